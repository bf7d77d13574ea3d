"""
Line and attribute grammar.

parse_line / line_to_string split a raw line into
{indentation, list marker, checkbox, leading date, remainder} and back.
parse_attributes / attributes_to_string split a remainder into text, inline
attributes and hashtags and back. Attributes use one of two syntaxes chosen
by settings:

    classic     @key  @key(value)
    structured  [key:: value]

Neither direction raises: unmatched lines come back whole in ``line`` and
malformed attribute tokens are dropped.
"""

import re
from typing import Dict, List, Optional, Tuple

from models.settings import TaskPlannerSettings
from models.task import AttributesStructure, AttributeValue, LineStructure

PRIORITY_SHORTCUTS = ("critical", "high", "medium", "low", "lowest")

_LINE_RE = re.compile(
    r"^(\s*)"
    r"(?:([*-]|\d+\.)\s*)?"
    r"(?:(\[.?\])\s+)?"
    r"(?:((?:\d{4}-)?\d{2}-\d{2}):\s*)?"
    r"(.+)$"
)
_CLASSIC_ATTRIBUTE_RE = re.compile(r"(?<![\w\[])@(\w+)(?:\(([^)]*)\))?")
_STRUCTURED_ATTRIBUTE_RE = re.compile(r"\[([^:\]\[]*)::([^\]]*)\]")
_HASHTAG_RE = re.compile(r"(?<!\S)#([A-Za-z][A-Za-z0-9_-]*)")
_WHITESPACE_RE = re.compile(r"\s+")


def _space(item: str, sep: str = " ") -> str:
    return f"{item}{sep}" if item else ""


class LineParser:
    def __init__(self, settings: Optional[TaskPlannerSettings] = None) -> None:
        self._settings = settings or TaskPlannerSettings()

    @property
    def structured(self) -> bool:
        return self._settings.use_structured_syntax

    # ------------------------------------------------------------------
    # Line grammar
    # ------------------------------------------------------------------

    def parse_line(self, line: str) -> LineStructure:
        m = _LINE_RE.match(line)
        if not m:
            return LineStructure(line=line)
        return LineStructure(
            indentation=m.group(1) or "",
            list_marker=m.group(2) or "",
            checkbox=m.group(3) or "",
            date=m.group(4) or "",
            line=m.group(5) or "",
        )

    def line_to_string(self, line: LineStructure) -> str:
        return (
            f"{line.indentation}{_space(line.list_marker)}{_space(line.checkbox)}"
            f"{_space(line.date, ': ')}{line.line}"
        )

    # ------------------------------------------------------------------
    # Attribute grammar
    # ------------------------------------------------------------------

    def _parse_token(self, m: "re.Match[str]") -> Optional[Tuple[str, AttributeValue]]:
        """Turn one matched token into (key, value), or None if it is malformed."""
        if self.structured:
            key, value = m.group(1).strip(), m.group(2).strip()
            if not key:
                return None
            return key, value

        key, value = m.group(1), m.group(2)
        if value is None:
            if key.lower() in PRIORITY_SHORTCUTS:
                return "priority", key.lower()
            return key, True
        value = value.strip()
        if not value:
            return None
        return key, value

    def parse_attributes(self, text: str, keep_tags: bool = False) -> AttributesStructure:
        """Split text into attributes, hashtags and the remaining text.

        With keep_tags the hashtag tokens stay where they are in the text
        (tags are still collected), so a line can be edited and written back
        without moving them.
        """
        pattern = _STRUCTURED_ATTRIBUTE_RE if self.structured else _CLASSIC_ATTRIBUTE_RE
        attributes: Dict[str, AttributeValue] = {}
        for m in pattern.finditer(text):
            parsed = self._parse_token(m)
            if parsed is not None:
                key, value = parsed
                attributes[key] = value
        remainder = pattern.sub(" ", text)

        tags: List[str] = []
        for m in _HASHTAG_RE.finditer(remainder):
            if m.group(1) not in tags:
                tags.append(m.group(1))
        if not keep_tags:
            remainder = _HASHTAG_RE.sub(" ", remainder)

        if remainder != text:
            remainder = _WHITESPACE_RE.sub(" ", remainder)
        return AttributesStructure(
            text_without_attributes=remainder.strip(),
            attributes=attributes,
            tags=tags,
        )

    def remove_tag(self, text: str, tag: str) -> str:
        """Delete every #tag token from text, leaving the rest in place."""
        token = re.compile(r"\s*(?<!\S)#" + re.escape(tag) + r"(?![A-Za-z0-9_-])")
        return token.sub("", text).strip()

    def attribute_to_string(self, key: str, value: AttributeValue) -> str:
        if self.structured:
            if value is True:
                return f"[{key}:: true]"
            return f"[{key}:: {value}]"
        if value is True:
            return f"@{key}"
        return f"@{key}({value})"

    def attributes_to_string(self, structure: AttributesStructure) -> str:
        text = structure.text_without_attributes
        present = set(_HASHTAG_RE.findall(text))
        parts = [text]
        parts.extend(f"#{tag}" for tag in structure.tags if tag not in present)
        parts.extend(
            self.attribute_to_string(key, value)
            for key, value in structure.attributes.items()
            if value is not False
        )
        return " ".join(p for p in parts if p).strip()
