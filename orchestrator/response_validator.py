import re
from dataclasses import dataclass

MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: str
    links: tuple[str, ...] = ()


def extract_markdown_links(text: str) -> list[str]:
    return [match.group(2).strip() for match in MARKDOWN_LINK_RE.finditer(text or "")]


def contains_markdown_link(text: str) -> bool:
    return MARKDOWN_LINK_RE.search(text or "") is not None


class ResponseValidator:
    """Checks a final answer for the properties the agent is instructed to guarantee."""

    def validate(self, text: str) -> ValidationResult:
        if not text or not text.strip():
            return ValidationResult(ok=False, reason="empty")

        if self._looks_like_refusal(text):
            return ValidationResult(ok=False, reason="refusal")

        links = tuple(extract_markdown_links(text))
        if not links:
            return ValidationResult(ok=False, reason="missing_citation")

        return ValidationResult(ok=True, reason="ok", links=links)

    def _looks_like_refusal(self, text: str) -> bool:
        text_lower = text.lower()
        refusal_phrases = [
            "i'm sorry, but i can't assist",
            "i am sorry, but i can't assist",
            "i'm sorry, but i cannot assist",
            "i am sorry, but i cannot assist",
            "i can't assist with",
            "i cannot assist with",
            "i can't help with",
            "i cannot help with",
        ]
        return any(phrase in text_lower for phrase in refusal_phrases)
