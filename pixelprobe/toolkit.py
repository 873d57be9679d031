# toolkit.py
# Plugin registry and dispatch, transform table, and the Pillow file adapter.

import importlib
import logging
from pathlib import Path

from PIL import Image

from pixelprobe.buffer import PixelBuffer
from pixelprobe.plugins import image_processor
from pixelprobe.plugins.histogram_analyzer import auto_threshold, equalize_histogram

logger = logging.getLogger(__name__)

PLUGINS_DIR = Path(__file__).resolve().parent / "plugins"
PLUGINS_PACKAGE = "pixelprobe.plugins"

TRANSFORMS = {
    "grayscale": image_processor.to_grayscale,
    "binary": image_processor.to_binary,
    "brightness": image_processor.adjust_brightness,
    "arithmetic_constant": image_processor.arithmetic_constant,
    "arithmetic_image": image_processor.arithmetic_image,
    "boolean": image_processor.boolean_operation,
    "rotate90": image_processor.rotate90,
    "rotate180": image_processor.rotate180,
    "rotate270": image_processor.rotate270,
    "flip_horizontal": image_processor.flip_horizontal,
    "flip_vertical": image_processor.flip_vertical,
    "auto_threshold": auto_threshold,
    "equalize": equalize_histogram,
}

# Positional parameters after the buffer: (required, optional), in call order.
# Transforms not listed take none.
TRANSFORM_PARAMS = {
    "binary": ((), ("value",)),
    "brightness": (("value",), ()),
    "arithmetic_constant": (("op", "value"), ()),
    "arithmetic_image": (("op", "other"), ()),
    "boolean": (("op", "other"), ()),
}

TRANSFORM_OPS = {
    "arithmetic_constant": image_processor.ARITHMETIC_OPS,
    "arithmetic_image": image_processor.ARITHMETIC_OPS,
    "boolean": image_processor.BOOLEAN_OPS,
}

LOADED_PLUGINS = []


def load_plugins():
    """
    Import every module in the plugins directory and instantiate the classes
    whose name ends with 'Plugin'. A plugin is kept when it has can_handle
    and at least one of analyze / embed / extract.
    """
    global LOADED_PLUGINS
    LOADED_PLUGINS = []
    for py in sorted(PLUGINS_DIR.glob("*.py")):
        if py.stem.startswith("_"):
            continue
        try:
            module = importlib.import_module(f"{PLUGINS_PACKAGE}.{py.stem}")
        except Exception:
            logger.exception("[plugin] failed to load %s", py.name)
            continue

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if not (isinstance(attr, type) and attr_name.lower().endswith("plugin")):
                continue
            if attr.__module__ != module.__name__:
                continue
            try:
                inst = attr()
            except Exception:
                logger.exception("[plugin] failed to instantiate %s", attr_name)
                continue

            has_can = callable(getattr(inst, "can_handle", None))
            has_analyze = callable(getattr(inst, "analyze", None))
            has_embed = callable(getattr(inst, "embed", None))
            has_extract = callable(getattr(inst, "extract", None))
            if has_can and (has_analyze or has_embed or has_extract):
                LOADED_PLUGINS.append(inst)
                logger.debug("[plugin] loaded %s", inst.name)
            else:
                logger.info(
                    "[plugin] skipping %s: has_can=%s, analyze=%s, embed=%s, extract=%s",
                    attr_name, has_can, has_analyze, has_embed, has_extract,
                )
    return LOADED_PLUGINS


def get_plugins():
    if not LOADED_PLUGINS:
        load_plugins()
    return LOADED_PLUGINS


# ---------------- DISPATCH ----------------

def analyze(buffer: PixelBuffer) -> dict:
    """Run every capable plugin's analyze; a failing plugin is reported as '<name>_error'."""
    response = {
        "width": buffer.width,
        "height": buffer.height,
        "pixels": buffer.pixel_count,
    }

    plugin_results = {}
    for plugin in get_plugins():
        if not hasattr(plugin, "analyze"):
            continue
        try:
            if plugin.can_handle(buffer):
                plugin_results[plugin.name] = plugin.analyze(buffer)
        except Exception as e:
            logger.exception("[plugin] %s failed during analyze", plugin.name)
            plugin_results[f"{plugin.name}_error"] = str(e)

    if plugin_results:
        response["plugins"] = plugin_results
    return response


def _first_with(method, buffer):
    for plugin in get_plugins():
        if callable(getattr(plugin, method, None)) and plugin.can_handle(buffer):
            return plugin
    raise LookupError(f"no plugin available to {method} this image")


def embed(buffer: PixelBuffer, text: str):
    """Return (encoded buffer, info) from the first plugin able to embed."""
    return _first_with("embed", buffer).embed(buffer, text)


def extract(buffer: PixelBuffer) -> dict:
    return _first_with("extract", buffer).extract(buffer)


def apply_transform(buffer: PixelBuffer, name: str, *args, **params) -> PixelBuffer:
    try:
        fn = TRANSFORMS[name]
    except KeyError:
        raise KeyError(f"unknown transform {name!r}; expected one of {', '.join(TRANSFORMS)}") from None
    return fn(buffer, *args, **params)


# ---------------- FILE ADAPTER ----------------

def load_image(path) -> PixelBuffer:
    with Image.open(path) as im:
        return PixelBuffer.from_image(im)


def save_image(buffer: PixelBuffer, path) -> Path:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    buffer.to_image().save(out_path)
    return out_path
