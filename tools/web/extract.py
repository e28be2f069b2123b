"""Convert fetched documents into readable text for the model.

HTML: strip chrome (scripts, navigation, footers), pick the main content
container, and flatten it to lightweight markdown (headings, list items, links).
PDF: concatenate page text with pypdf.
"""

import io
import re

from bs4 import BeautifulSoup, NavigableString, Tag
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .contracts import FetchError

NOISE_TAGS = [
    "script",
    "style",
    "noscript",
    "iframe",
    "svg",
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    "button",
]
NOISE_SELECTORS = [
    ".advertisement",
    ".ads",
    ".cookie-banner",
    ".newsletter",
    ".social-share",
    "[role=navigation]",
    "[aria-hidden=true]",
]
MAIN_CONTENT_SELECTORS = [
    "article",
    "main",
    "[role=main]",
    ".post-content",
    ".article-content",
    ".entry-content",
    ".content",
    "#content",
]
BLOCK_TAGS = {"p", "div", "section", "blockquote", "pre", "table", "tr", "br"}
HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}


def is_pdf_response(url: str, content_type: str | None, body: bytes) -> bool:
    """True when the header, the URL or the file signature says PDF."""
    if content_type and "application/pdf" in content_type.lower():
        return True
    if url.lower().split("?")[0].endswith(".pdf"):
        return True
    return body[:5] == b"%PDF-"


def _render(node: Tag | NavigableString, out: list[str]) -> None:
    if isinstance(node, NavigableString):
        text = str(node)
        if text.strip():
            out.append(re.sub(r"\s+", " ", text))
        return

    name = node.name or ""
    if name in HEADING_TAGS:
        heading = node.get_text(" ", strip=True)
        if heading:
            out.append(f"\n\n{'#' * HEADING_TAGS[name]} {heading}\n\n")
        return
    if name == "a":
        label = node.get_text(" ", strip=True)
        href = node.get("href")
        if label and isinstance(href, str) and href.startswith(("http://", "https://")):
            out.append(f" [{label}]({href}) ")
        elif label:
            out.append(f" {label} ")
        return
    if name == "li":
        out.append("\n- ")
    elif name in BLOCK_TAGS:
        out.append("\n\n")

    for child in node.children:
        _render(child, out)

    if name in BLOCK_TAGS:
        out.append("\n\n")


def extract_article_text(html: str) -> str:
    """
    Extract the readable article body of an HTML page as markdown-ish text.

    Raises:
        FetchError: If nothing readable remains after cleanup
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag_name in NOISE_TAGS:
        for tag in soup.find_all(tag_name):
            tag.decompose()
    for selector in NOISE_SELECTORS:
        for tag in soup.select(selector):
            tag.decompose()

    root = None
    for selector in MAIN_CONTENT_SELECTORS:
        root = soup.select_one(selector)
        if root is not None and root.get_text(strip=True):
            break
        root = None
    if root is None:
        root = soup.body or soup

    parts: list[str] = []
    _render(root, parts)
    text = "".join(parts)

    # Collapse whitespace runs but keep paragraph breaks
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()

    if not text:
        raise FetchError("Page contained no readable text")
    return text


def extract_pdf_text(body: bytes) -> str:
    """
    Extract text from all pages of a PDF document.

    Raises:
        FetchError: If the PDF cannot be parsed or has no text layer
    """
    try:
        reader = PdfReader(io.BytesIO(body))
        pages = [(page.extract_text() or "").strip() for page in reader.pages]
    except (PdfReadError, ValueError) as e:
        raise FetchError(f"Could not parse PDF: {e}") from e

    text = "\n\n".join(page for page in pages if page)
    if not text:
        raise FetchError("PDF has no extractable text")
    return text
