from __future__ import annotations

import logging
import re
import urllib.parse
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from .document import EpubDocument
from .env import library_dir
from .errors import (
    ArchiveAccessError,
    EpubError,
    NoBodyContentError,
    NotFoundError,
    UnsupportedMediaTypeError,
)
from .models import RewriteTargets, manifest_entry_to_dict, toc_node_to_dict
from .toc import flatten_toc

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
BOOK_ID_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")

app = FastAPI()
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
logger = logging.getLogger("epubdoc.web")


def _no_store_headers() -> dict[str, str]:
    return {
        "Cache-Control": "no-store, max-age=0",
        "CDN-Cache-Control": "no-store",
        "Pragma": "no-cache",
        "Expires": "0",
    }


def _edge_bypass_browser_revalidate_headers() -> dict[str, str]:
    # Browser may store, but must revalidate with origin; CDN must not cache.
    return {
        "Cache-Control": "private, no-cache, must-revalidate",
        "CDN-Cache-Control": "no-store",
        "Pragma": "no-cache",
    }


def book_targets(book_id: str) -> RewriteTargets:
    return RewriteTargets(
        image_base_url=f"/book/{book_id}/epub",
        link_base_url=f"/book/{book_id}/read",
    )


def _book_file(book_id: str) -> Path:
    if not BOOK_ID_RE.match(book_id):
        raise HTTPException(status_code=404, detail="Invalid book id")
    epub_file = library_dir() / f"{book_id}.epub"
    if not epub_file.is_file():
        raise HTTPException(status_code=404, detail="Book not found")
    return epub_file


def _load_book(book_id: str) -> EpubDocument:
    document = EpubDocument(_book_file(book_id), targets=book_targets(book_id))
    try:
        return document.load()
    except ArchiveAccessError:
        logger.exception("failed to read %s", document.path)
        raise HTTPException(status_code=500, detail="EPUB unreadable")
    except EpubError as exc:
        logger.warning("rejecting %s: %s", document.path, exc)
        raise HTTPException(status_code=422, detail=f"Invalid EPUB: {exc}")


def _chapter_title(document: EpubDocument, href: str) -> Optional[str]:
    for node in flatten_toc(document.get_toc()):
        if node.file_name == href and node.name:
            return node.name
    return None


def _book_title(document: EpubDocument) -> str:
    title = document.get_metadata("title")
    if isinstance(title, list):
        title = title[0] if title else ""
    return title or document.path.stem


@app.get("/book/{book_id}")
async def book_info(book_id: str) -> dict[str, object]:
    document = _load_book(book_id)
    return {
        "book_id": book_id,
        "title": _book_title(document),
        "metadata": document.get_metadata(),
        "spine": document.get_spine(),
        "manifest": [manifest_entry_to_dict(entry) for entry in document.get_manifest().values()],
        "toc": [toc_node_to_dict(node) for node in document.get_toc()],
    }


@app.get("/book/{book_id}/chapter/{item_id}", response_class=HTMLResponse)
async def chapter(request: Request, book_id: str, item_id: str) -> HTMLResponse:
    document = _load_book(book_id)
    try:
        body = document.get_chapter(item_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Chapter not found")
    except UnsupportedMediaTypeError as exc:
        raise HTTPException(status_code=415, detail=str(exc))
    except NoBodyContentError:
        raise HTTPException(status_code=422, detail="Chapter has no body")

    spine = document.get_spine()
    position = spine.index(item_id) if item_id in spine else None
    prev_id = spine[position - 1] if position else None
    next_id = spine[position + 1] if position is not None and position + 1 < len(spine) else None
    entry = document.get_manifest(item_id)

    return templates.TemplateResponse(
        request,
        "reader.html",
        {
            "book_id": book_id,
            "book_title": _book_title(document),
            "chapter_title": _chapter_title(document, entry.href) or item_id,
            "chapter_html": body,
            "toc": document.get_toc(),
            "prev_id": prev_id,
            "next_id": next_id,
            "link_base": document.targets.link_base,
        },
        headers=_no_store_headers(),
    )


@app.get("/book/{book_id}/read/{item_path:path}")
async def read_item(book_id: str, item_path: str) -> RedirectResponse:
    document = _load_book(book_id)
    entry = document.find_by_href(urllib.parse.unquote(item_path))
    if entry is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return RedirectResponse(url=f"/book/{book_id}/chapter/{urllib.parse.quote(entry.id)}", status_code=303)


@app.get("/book/{book_id}/epub/{item_path:path}")
async def epub_item(book_id: str, item_path: str) -> Response:
    document = _load_book(book_id)
    entry = document.find_by_href(urllib.parse.unquote(item_path))
    if entry is None:
        raise HTTPException(status_code=404, detail="Item not found")
    try:
        content = document.get_file(entry.id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Item not found")
    return Response(
        content=content,
        media_type=entry.media_type or "application/octet-stream",
        headers=_edge_bypass_browser_revalidate_headers(),
    )
