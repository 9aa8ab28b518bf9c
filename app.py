from __future__ import annotations

# Hugging Face Spaces entrypoint: HF serves the global `demo`.
# Run locally with `python app.py`.

import os

from scripts.gradio_app import app as create_app

demo = create_app()

if __name__ == "__main__":
    demo.launch(server_name="0.0.0.0", server_port=int(os.getenv("PORT", "7860")))
