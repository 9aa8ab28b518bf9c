from __future__ import annotations

import asyncio
import os
import tempfile
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Tuple

import gradio as gr

from weaver import archive
from weaver.config import Settings, configure_logging, load_settings
from weaver.download import export_image
from weaver.session import Session
from weaver.state import ImageStatus, SessionSnapshot

TABLE_HEADERS = ["#", "Status", "Prompt"]


def _render(session: Session) -> Tuple[Any, ...]:
    snap: SessionSnapshot = session.snapshot()
    has_items = bool(snap.items)
    busy = snap.is_busy

    if snap.error:
        banner = gr.update(value=f"**Error:** {snap.error}", visible=True)
    elif snap.is_generating_prompts:
        banner = gr.update(value="Analyzing article and generating prompts...", visible=True)
    elif not has_items:
        banner = gr.update(value="Your generated images will appear here.", visible=True)
    else:
        banner = gr.update(value="", visible=False)

    rows = [[i, im.status.value, im.prompt] for i, im in enumerate(snap.items)]
    gallery = [(im.result, f"[{i}] {im.prompt}") for i, im in enumerate(snap.items) if im.status is ImageStatus.SUCCESS]

    return (
        banner,
        gr.update(value=rows or None),
        gallery,
        gr.update(value=snap.article_text, interactive=not busy),
        gr.update(visible=not has_items, interactive=not snap.is_generating_prompts),
        gr.update(visible=has_items, interactive=snap.has_pending and not busy,
                  value="Working..." if snap.is_generating else "Generate All"),
        gr.update(visible=has_items, interactive=not busy),
        gr.update(visible=has_items, interactive=not busy),
    )


async def _stream(session: Session, action: Callable[[], Awaitable[None]]) -> AsyncIterator[Tuple[Any, ...]]:
    """Run ``action`` and yield a re-render after each session change."""
    changed = asyncio.Event()
    unsubscribe = session.subscribe(lambda _snap: changed.set())
    task = asyncio.ensure_future(action())
    try:
        while True:
            waiter = asyncio.ensure_future(changed.wait())
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if waiter not in done:
                waiter.cancel()
            changed.clear()
            yield _render(session)
            if task in done:
                break
        await task
    finally:
        unsubscribe()


def app(settings: Optional[Settings] = None) -> gr.Blocks:
    settings = settings or load_settings()
    configure_logging(settings)

    def _session(session: Optional[Session]) -> Session:
        return session or Session.with_gemini(settings)

    async def on_submit(session, article_text):
        session = _session(session)
        session.set_article_text(article_text or "")
        async for out in _stream(session, session.submit_article):
            yield (session, *out)

    async def on_generate_all(session):
        session = _session(session)
        async for out in _stream(session, session.generate_all):
            yield (session, *out)

    async def on_generate_more(session, article_text):
        session = _session(session)
        session.set_article_text(article_text or "")
        async for out in _stream(session, session.generate_more):
            yield (session, *out)

    async def on_generate_one(session, index):
        session = _session(session)
        if index is None:
            yield (session, *_render(session))
            return
        async for out in _stream(session, lambda: session.generate(int(index))):
            yield (session, *out)

    async def on_reset(session):
        session = _session(session)
        session.reset()
        return (session, *_render(session))

    async def on_table_edit(session, rows: List[List[Any]]):
        session = _session(session)
        for row in rows or []:
            if len(row) < 3 or row[0] in (None, ""):
                continue
            i = int(row[0])
            item = session.store.get(i)
            if item is not None and str(row[2]) != item.prompt:
                session.edit_prompt(i, str(row[2]))
        return (session, *_render(session))

    async def on_download(session, index):
        session = _session(session)
        item = session.store.get(int(index)) if index is not None else None
        if item is None or item.status is not ImageStatus.SUCCESS:
            raise gr.Error("Select an item whose image has been generated.")
        return str(export_image(item, tempfile.mkdtemp(prefix="weaver_")))

    async def on_zip(session):
        session = _session(session)
        outdir = archive.run(session.snapshot(), tempfile.mkdtemp(prefix="weaver_export_"))
        return archive.zip_outdir(outdir)

    with gr.Blocks(title="Blog Image Weaver") as demo:
        gr.Markdown(f"""
        # Blog Image Weaver
        Paste your article, generate prompts, then edit and weave them into a visual gallery.
        - Prompts stay editable while an item is pending or has failed; retry a failed item by its number.
        - Offline works with placeholders if no `GEMINI_API_KEY` is set. With an API key, set `GEMINI_MODEL` and `GEMINI_IMAGE_MODEL`.
        - Each "+ {settings.prompt_count} More" asks for prompts different from the current ones.
        """)

        session_state = gr.State(None)

        article = gr.Textbox(label="Article", lines=10, placeholder="Paste your full blog article here...")
        with gr.Row():
            gen_prompts_btn = gr.Button("Generate Prompts", variant="primary")
            gen_all_btn = gr.Button("Generate All", variant="primary", visible=False)
            more_btn = gr.Button(f"+ {settings.prompt_count} More", visible=False)
            reset_btn = gr.Button("Start Over", visible=False)

        banner = gr.Markdown("Your generated images will appear here.")
        table = gr.Dataframe(headers=TABLE_HEADERS, datatype=["number", "str", "str"], type="array",
                             interactive=True, wrap=True, label="Prompts")
        with gr.Row():
            index = gr.Number(label="Item #", precision=0, value=0)
            gen_one_btn = gr.Button("Generate / Retry")
            download_btn = gr.Button("Download")
            zip_btn = gr.Button("Export all (.zip)")
        gallery = gr.Gallery(label="Images", columns=3)
        download_file = gr.File(label="Download", interactive=False)

        outputs = [session_state, banner, table, gallery, article, gen_prompts_btn, gen_all_btn, more_btn, reset_btn]

        gen_prompts_btn.click(on_submit, inputs=[session_state, article], outputs=outputs)
        gen_all_btn.click(on_generate_all, inputs=[session_state], outputs=outputs)
        more_btn.click(on_generate_more, inputs=[session_state, article], outputs=outputs)
        reset_btn.click(on_reset, inputs=[session_state], outputs=outputs)
        gen_one_btn.click(on_generate_one, inputs=[session_state, index], outputs=outputs)
        table.input(on_table_edit, inputs=[session_state, table], outputs=outputs)
        download_btn.click(on_download, inputs=[session_state, index], outputs=[download_file])
        zip_btn.click(on_zip, inputs=[session_state], outputs=[download_file])

    return demo


if __name__ == "__main__":
    port = int(os.getenv("PORT", "7860"))
    app().launch(server_name="0.0.0.0", server_port=port)
