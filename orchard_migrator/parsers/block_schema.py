from __future__ import annotations

from typing import Any, Dict, List

EDITOR_JS_VERSION = "2.15.0"

# Embed blocks always use the player's default frame
EMBED_WIDTH = 580
EMBED_HEIGHT = 320


# --- Builders for editor.js blocks ---

def document(blocks: List[Dict[str, Any]], time: int) -> Dict[str, Any]:
    return {"time": time, "blocks": blocks or [], "version": EDITOR_JS_VERSION}


def header(text: str, level: int) -> Dict[str, Any]:
    lvl = max(1, min(6, int(level or 1)))
    return {"type": "header", "data": {"text": text or "", "level": lvl}}


def paragraph(text: str) -> Dict[str, Any]:
    return {"type": "paragraph", "data": {"text": text or ""}}


def raw(html: str) -> Dict[str, Any]:
    return {"type": "raw", "data": {"html": html or ""}}


def embed(service: str, source: str, embed_url: str) -> Dict[str, Any]:
    return {
        "type": "embed",
        "data": {
            "service": service,
            "source": source,
            "embed": embed_url,
            "width": EMBED_WIDTH,
            "height": EMBED_HEIGHT,
            "caption": "",
        },
    }
