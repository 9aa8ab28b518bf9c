import json
import zipfile
from pathlib import Path

from weaver import archive, cli
from weaver.state import ImageItem, ImageStatus, SessionSnapshot


def test_archive_dumps_prompts_and_images(tmp_path):
    src = tmp_path / "image_1.png"
    src.write_bytes(b"img")
    snap = SessionSnapshot(
        article_text="An article.",
        items=(
            ImageItem(prompt="Sunset over hills", status=ImageStatus.SUCCESS, result=str(src)),
            ImageItem(prompt="Failed one", status=ImageStatus.ERROR, error_message="Generation Failed"),
            ImageItem(prompt="Not yet"),
        ),
    )
    out = archive.run(snap, tmp_path / "export")
    records = json.loads((out / "prompts.json").read_text())
    assert [r["status"] for r in records] == ["success", "error", "pending"]
    assert records[0]["file"] == str(Path("images") / "sunset-over-hills.png")
    assert records[1]["error"] == "Generation Failed"
    assert (out / "article.txt").read_text() == "An article."
    assert (out / "images" / "sunset-over-hills.png").read_bytes() == b"img"

    zip_path = archive.zip_outdir(out)
    with zipfile.ZipFile(zip_path) as zf:
        assert "prompts.json" in zf.namelist()


def test_zip_missing_dir(tmp_path):
    assert archive.zip_outdir(tmp_path / "nope") == ""


def test_cli_offline_run(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("WEAVER_PROMPT_COUNT", "2")
    monkeypatch.setattr("weaver.config.get_api_key", lambda: None)
    article = tmp_path / "article.txt"
    article.write_text("Mountains at dawn. Rivers in spring. Forests in fall.")
    outdir = tmp_path / "run"

    code = cli.main(["--article", str(article), "--more", "1", "--outdir", str(outdir), "--zip"])

    assert code == 0
    records = json.loads((outdir / "prompts.json").read_text())
    assert len(records) == 4
    assert all(r["status"] == "success" for r in records)
    assert len(list((outdir / "images").iterdir())) == 4
    assert Path(str(outdir) + ".zip").exists()
    assert "Artifacts saved under" in capsys.readouterr().out


def test_cli_no_generate(tmp_path, monkeypatch):
    monkeypatch.setattr("weaver.config.get_api_key", lambda: None)
    monkeypatch.setenv("WEAVER_PROMPT_COUNT", "2")
    article = tmp_path / "article.txt"
    article.write_text("Only one sentence.")
    outdir = tmp_path / "run"
    assert cli.main(["--article", str(article), "--no-generate", "--outdir", str(outdir)]) == 0
    records = json.loads((outdir / "prompts.json").read_text())
    assert [r["status"] for r in records] == ["pending", "pending"]
