"""
quotedoc/core/paths.py — Centralized Path Configuration

Single source of truth for the directories the quote service reads from and
writes to. Every module imports from here instead of computing its own paths.

Assets (fonts, logo) are read-only and may be missing entirely; the PDF
generator falls back to built-in fonts and skips the logo in that case.
"""

import os
import logging

log = logging.getLogger("quotedoc.paths")

# ── Project Root ──────────────────────────────────────────────────────────────
_THIS_FILE = os.path.abspath(__file__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(_THIS_FILE)))


def _resolve_dir(env_name: str, default: str) -> str:
    """Env override wins when it points at an existing directory."""
    env_dir = os.environ.get(env_name, "")
    if env_dir and os.path.isdir(env_dir):
        return env_dir
    if env_dir:
        log.warning("%s=%s does not exist, using %s", env_name, env_dir, default)
    return default


# Priority: QUOTEDOC_*_DIR env → repo-relative default
ASSETS_DIR = _resolve_dir("QUOTEDOC_ASSETS_DIR", os.path.join(PROJECT_ROOT, "assets"))
DATA_DIR = _resolve_dir("QUOTEDOC_DATA_DIR", os.path.join(PROJECT_ROOT, "data"))
OUTPUT_DIR = _resolve_dir("QUOTEDOC_OUTPUT_DIR", os.path.join(PROJECT_ROOT, "output"))

# ── Asset names (relative to ASSETS_DIR) ─────────────────────────────────────
FONT_REGULAR_FILE = os.path.join("fonts", "Sintony-Regular.ttf")
FONT_BOLD_FILE = os.path.join("fonts", "Sintony-Bold.ttf")
LOGO_FILES = (
    os.path.join("images", "logo.png"),
    os.path.join("images", "logo.jpg"),
    "logo.png",
)


def asset_path(assets_dir: str, name: str) -> str:
    return os.path.join(assets_dir, name)


def validate_paths() -> dict:
    """Runtime validation — call at app startup to surface missing assets early.

    Returns:
        {"ok": bool, "errors": [str], "warnings": [str], "resolved": {name: path}}
    """
    result = {"ok": True, "errors": [], "warnings": [], "resolved": {}}

    checks = {
        "PROJECT_ROOT": (PROJECT_ROOT, True),
        "ASSETS_DIR": (ASSETS_DIR, False),
        "FONT_REGULAR": (asset_path(ASSETS_DIR, FONT_REGULAR_FILE), False),
        "FONT_BOLD": (asset_path(ASSETS_DIR, FONT_BOLD_FILE), False),
    }
    for name, (path, required) in checks.items():
        result["resolved"][name] = path
        if not os.path.exists(path):
            if required:
                result["errors"].append(f"{name} not found: {path}")
                result["ok"] = False
            else:
                result["warnings"].append(f"{name} not found: {path} (fallback in use)")

    if not any(os.path.exists(asset_path(ASSETS_DIR, n)) for n in LOGO_FILES):
        result["warnings"].append(f"No logo under {ASSETS_DIR} (quotes render without logo)")

    # Output dir is created on demand; flag it only when it cannot be created
    try:
        os.makedirs(OUTPUT_DIR, exist_ok=True)
    except OSError as e:
        result["errors"].append(f"OUTPUT_DIR not writable: {e}")
        result["ok"] = False
    result["resolved"]["OUTPUT_DIR"] = OUTPUT_DIR

    return result
