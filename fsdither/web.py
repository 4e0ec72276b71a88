"""Upload/download web service around the dithering pipeline.

Run with ``fsdither serve`` or ``flask --app fsdither.web run``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from flask import (
    Flask,
    abort,
    jsonify,
    render_template_string,
    request,
    send_from_directory,
    url_for,
)
from werkzeug.utils import secure_filename

from fsdither.core.bands import RemainderPolicy
from fsdither.core.processor import (
    DEFAULT_WORKERS,
    DitherStrategy,
    Settings,
    process_image,
)
from fsdither.core.reader import ImageCodec, decode_image
from fsdither.core.writer import encode_image

logger = logging.getLogger(__name__)

OUTPUT_CODEC = ImageCodec.JPEG
OUTPUT_SUFFIX = ".jpg"

_PAGE_STYLE = """
    <style>
      body { background-color: #b8b8b8; }
      #title {
        color: #ffffff;
        text-shadow: 4px 3px 0 #7a7a7a;
        font-size: 5vw;
      }
    </style>
"""

INDEX_HTML = f"""<!doctype html>
<html>
  <head><title>Floyd-Steinberg dithering</title>{_PAGE_STYLE}</head>
  <body>
    <div id="title">Floyd-Steinberg dithering</div><br><br>
    <form action="/upload" method="post" enctype="multipart/form-data">
      <input type="file" name="image" accept="image/png,image/jpeg">
      <input type="submit" value="Upload">
    </form>
  </body>
</html>
"""

RESULT_HTML = f"""<!doctype html>
<html>
  <head><title>Floyd-Steinberg dithering</title>{_PAGE_STYLE}</head>
  <body>
    <div id="title">Floyd-Steinberg dithering</div><br><br>
    <p>Dithered {{{{ width }}}}x{{{{ height }}}} in {{{{ elapsed }}}} ms.</p>
    <a href="{{{{ link }}}}">Click to download the image!</a>
  </body>
</html>
"""


def output_filename(uploaded: str) -> str | None:
    """Name under which a dithered upload is stored, or None if unusable.

    The name is reduced to a safe basename and always gets a .jpg suffix.
    """
    stem = Path(secure_filename(uploaded)).stem
    if not stem:
        return None
    return f"{stem}{OUTPUT_SUFFIX}"


def is_served_filename(name: str) -> bool:
    """True if `name` is a plain stored-output name (no path components)."""
    return (
        bool(name)
        and secure_filename(name) == name
        and Path(name).suffix.lower() == OUTPUT_SUFFIX
    )


def create_app(config: dict | None = None) -> Flask:
    """Application factory.

    Config keys: OUTPUT_FOLDER, DITHER_WORKERS, DITHER_STRATEGY,
    DITHER_REMAINDER, MAX_CONTENT_LENGTH. FSDITHER_OUTPUT_FOLDER and
    FSDITHER_WORKERS in the environment override the defaults; `config`
    overrides both.
    """
    app = Flask(__name__)
    app.config.update(
        OUTPUT_FOLDER=os.environ.get("FSDITHER_OUTPUT_FOLDER", "dithered"),
        DITHER_WORKERS=int(os.environ.get("FSDITHER_WORKERS", DEFAULT_WORKERS)),
        DITHER_STRATEGY=DitherStrategy.BANDED.value,
        DITHER_REMAINDER=RemainderPolicy.EXTEND.value,
        MAX_CONTENT_LENGTH=32 * 1024 * 1024,
    )
    if config:
        app.config.update(config)

    workers = int(app.config["DITHER_WORKERS"])
    if workers < 1:
        raise ValueError(f"DITHER_WORKERS must be at least 1, got {workers}")

    output_dir = Path(app.config["OUTPUT_FOLDER"]).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    settings = Settings(
        strategy=DitherStrategy(app.config["DITHER_STRATEGY"]),
        workers=workers,
        remainder=RemainderPolicy(app.config["DITHER_REMAINDER"]),
    )

    @app.route("/")
    def index():
        return INDEX_HTML

    @app.route("/upload", methods=["POST"])
    def upload():
        uploaded = request.files.get("image")
        if uploaded is None or not uploaded.filename:
            abort(400, description="No image uploaded")

        name = output_filename(uploaded.filename)
        if name is None:
            abort(400, description="Invalid filename")

        try:
            img = decode_image(uploaded.stream)
            result = process_image(img, settings)
        except ValueError as e:
            logger.warning("Rejected upload %r: %s", uploaded.filename, e)
            abort(400, description=str(e))

        (output_dir / name).write_bytes(encode_image(result.image, OUTPUT_CODEC))
        logger.info("Stored %s (%dx%d)", name, result.width, result.height)

        return render_template_string(
            RESULT_HTML,
            link=url_for("download", filename=name),
            width=result.width,
            height=result.height,
            elapsed=f"{result.elapsed_ms:.0f}",
        )

    @app.route("/download")
    def download():
        filename = request.args.get("filename", "")
        if not is_served_filename(filename):
            abort(400, description="Invalid filename")
        return send_from_directory(
            output_dir,
            filename,
            as_attachment=True,
            mimetype=OUTPUT_CODEC.mimetype,
        )

    @app.route("/healthz")
    def healthz():
        return jsonify({"ok": True})

    return app


def run_server(host: str = "127.0.0.1", port: int = 8080, config: dict | None = None) -> None:
    """Create the app and serve it with the development server."""
    app = create_app(config)
    logger.info("Serving on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=False)
