"""
NFT Avatar Compositor - Offline Local Server
Flask-based server that serves the web interface and composites avatars locally.
Trait images come from a local asset folder served under /assets/ instead of
Azure storage.
"""

import logging
import os
import threading
import webbrowser
from pathlib import Path

from flask import Flask, Response, abort, current_app, jsonify, request, send_from_directory
from flask_cors import CORS

from . import __version__
from .assets import AssetResolver
from .config import config_from_env
from .export import error_payload, parse_trait_urls, success_payload
from .pipeline import compose_layers, compose_selection
from .traits import Z_ORDER, AvatarSelection

logger = logging.getLogger(__name__)

# Configuration
BASE_DIR = Path(os.environ.get("AVATAR_HOME", Path.cwd()))
ASSETS_DIR = Path(os.environ.get("ASSETS_DIR", BASE_DIR / "assets"))
OUTPUT_DIR = BASE_DIR / "output"
FRONTEND_DIR = Path(os.environ.get("FRONTEND_DIR", BASE_DIR / "frontend"))
ASSET_URL_PREFIX = "/assets/"

app = Flask(__name__, static_folder=None)
app.config["ASSETS_DIR"] = ASSETS_DIR
CORS(app)


def get_asset_resolver() -> AssetResolver:
    """Resolver reading /assets/... refs from the local asset folder."""
    resolver = current_app.config.get("ASSET_RESOLVER")
    if resolver is None:
        resolver = AssetResolver(
            assets_dir=current_app.config["ASSETS_DIR"],
            local_prefix=ASSET_URL_PREFIX,
        )
        current_app.config["ASSET_RESOLVER"] = resolver
    return resolver


def get_composite_config():
    config = current_app.config.get("COMPOSITE_CONFIG")
    if config is None:
        config = config_from_env()
        current_app.config["COMPOSITE_CONFIG"] = config
    return config


def failure_response(exc: Exception):
    body, status = error_payload(exc)
    if status >= 500:
        logger.exception("Error compositing avatar")
    else:
        logger.warning("Compositing failed: %s", exc)
    return jsonify(body), status


@app.route("/")
def index():
    """Serve the main page."""
    return send_from_directory(FRONTEND_DIR, "index.html")


@app.route("/assets/<path:filename>")
def get_asset(filename):
    """Serve a trait image from the local asset folder."""
    file_path = Path(current_app.config["ASSETS_DIR"]) / filename
    if not file_path.is_file():
        abort(404)
    return send_from_directory(current_app.config["ASSETS_DIR"], filename)


@app.route("/api/health")
def health_check():
    return jsonify({"status": "healthy", "version": f"{__version__}-offline", "mode": "local"})


@app.route("/api/categories")
def list_categories():
    """Trait categories in the order they are composited (back to front)."""
    return jsonify({"categories": [category.value for category in Z_ORDER]})


@app.route("/api/combine-gifs", methods=["POST"])
def combine_gifs():
    """Composite an ordered list of trait image URLs into one PNG or animated GIF."""
    payload = request.get_json(silent=True)
    try:
        trait_urls = parse_trait_urls(payload)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = compose_layers(trait_urls, get_asset_resolver(), get_composite_config())
    except Exception as e:
        return failure_response(e)
    return jsonify(success_payload(result))


@app.route("/api/compose", methods=["POST"])
def compose_avatar():
    """Composite a full trait selection and return the image as a download."""
    payload = request.get_json(silent=True)
    try:
        selection = AvatarSelection.from_dict(payload)
    except (ValueError, TypeError, AttributeError) as e:
        return jsonify({"error": f"Invalid selection: {e}"}), 400

    try:
        result = compose_selection(selection, get_asset_resolver(), get_composite_config())
    except Exception as e:
        return failure_response(e)

    if current_app.config.get("SAVE_OUTPUT"):
        output_path = OUTPUT_DIR / result.filename
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(result.data)

    return Response(
        result.data,
        mimetype=result.mime_type,
        headers={
            "Content-Disposition": f"attachment; filename={result.filename}",
            "X-Frame-Count": str(result.frame_count),
        },
    )


def open_browser():
    """Open the browser after a short delay."""
    import time
    time.sleep(1.5)
    webbrowser.open("http://localhost:5000")


def main():
    """Run the server."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("=" * 50)
    print("NFT Avatar Compositor - Offline Mode")
    print("=" * 50)
    print(f"\nAsset folder:  {ASSETS_DIR}")
    print(f"Output folder: {OUTPUT_DIR}")
    print(f"\nOpening http://localhost:5000 in your browser...")
    print("Press Ctrl+C to stop the server.\n")

    ASSETS_DIR.mkdir(parents=True, exist_ok=True)
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    app.config["SAVE_OUTPUT"] = True

    threading.Thread(target=open_browser, daemon=True).start()

    app.run(host="localhost", port=5000, debug=False)


if __name__ == "__main__":
    main()
