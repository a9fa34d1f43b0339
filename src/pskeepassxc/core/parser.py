"""Parsing of keepassxc-cli text output.

``show`` output is a block of ``Label: value`` lines; each field is looked up
independently and defaults to an empty string.

``ls -R -f`` output is parsed line by line with an ordered list of named
matchers. The first matcher that accepts a line wins; ``bare_title`` accepts
any non-blank line, so no content line is ever lost.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .models import DIRECTORY_MARKER, Entry, ListingResult, ListingStatus

logger = logging.getLogger(__name__)

PROMPT_BANNER = re.compile(r"^\s*Enter password to unlock .*?:(?:\s+|$)", re.IGNORECASE)
DIVIDER = re.compile(r"^\s*[-=_*]{3,}\s*$")
HEADER = re.compile(r"^\s*(uuid|id)\s+group\s+title\s*$", re.IGNORECASE)

ERROR_MARKERS = [
    re.compile(r"Could not find entry", re.IGNORECASE),
    re.compile(r"Entry with path .* not found", re.IGNORECASE),
    re.compile(r"Error while reading the database", re.IGNORECASE),
    re.compile(r"Invalid credentials", re.IGNORECASE),
    re.compile(r"Failed to open database", re.IGNORECASE),
]

# Label as printed by keepassxc-cli -> Entry attribute
SHOW_FIELDS: Dict[str, str] = {
    "Title": "title",
    "UserName": "username",
    "Password": "password",
    "URL": "url",
    "Notes": "notes",
    "Uuid": "uuid",
    "Tags": "tags",
}


def strip_prompt_banner(line: str) -> str:
    return PROMPT_BANNER.sub("", line, count=1)


def find_error_marker(output: str) -> Optional[str]:
    """Return the first recognised error line in tool output, if any."""
    for line in output.splitlines():
        for marker in ERROR_MARKERS:
            if marker.search(line):
                return line.strip()
    return None


def _field_pattern(label: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(label)}:[ \t]?(.*)$", re.MULTILINE)


_SHOW_PATTERNS = {label: _field_pattern(label) for label in SHOW_FIELDS}
_ANY_LABEL = re.compile(r"^(?:%s):" % "|".join(re.escape(label) for label in SHOW_FIELDS))


def strip_show_fields(output: str) -> str:
    """Drop labelled field lines, and Notes continuation lines, from show output."""
    kept = []
    in_notes = False
    for line in output.splitlines():
        line = strip_prompt_banner(line)
        if _ANY_LABEL.match(line):
            in_notes = line.startswith("Notes:")
            continue
        if not in_notes:
            kept.append(line)
    return "\n".join(kept)


def _extract_notes(lines: List[str]) -> str:
    # Notes may span several lines; they run until the next known label.
    for index, line in enumerate(lines):
        if line.startswith("Notes:"):
            collected = [line[len("Notes:"):].lstrip(" \t")]
            for follow in lines[index + 1:]:
                if _ANY_LABEL.match(follow):
                    break
                collected.append(follow)
            return "\n".join(collected).rstrip()
    return ""


def parse_show_output(output: str) -> Entry:
    """Build an Entry from ``keepassxc-cli show`` output."""
    lines = [strip_prompt_banner(line) for line in output.splitlines()]
    text = "\n".join(lines)

    values = {}
    for label, attribute in SHOW_FIELDS.items():
        if attribute == "notes":
            values[attribute] = _extract_notes(lines)
            continue
        match = _SHOW_PATTERNS[label].search(text)
        if not match:
            values[attribute] = ""
        elif attribute == "password":
            values[attribute] = match.group(1).rstrip("\r")
        else:
            values[attribute] = match.group(1).strip()
    return Entry(**values)


@dataclass(frozen=True)
class LineMatcher:
    """A named listing-line shape."""
    name: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], Entry]

    def match(self, line: str) -> Optional[Entry]:
        found = self.pattern.match(line)
        if not found:
            return None
        return self.build(found)


def _three_fields(found: re.Match[str]) -> Entry:
    return Entry(uuid=found.group(1), group=found.group(2).strip("/"), title=found.group(3))


UUID_GROUP_TITLE = LineMatcher(
    name="uuid_group_title",
    pattern=re.compile(r"^\s*(\{?(?=[0-9A-Fa-f-]*\d)[0-9A-Fa-f-]{6,}\}?)(?:\s{2,}|\t+)(\S.*?)(?:\s{2,}|\t+)(\S.*?)\s*$"),
    build=_three_fields,
)

LOOSE_THREE_FIELD = LineMatcher(
    name="loose_three_field",
    pattern=re.compile(r"^\s*(\{?(?=[0-9A-Fa-f-]*\d)[0-9A-Fa-f-]{6,}\}?)\s+(\S+)\s+(\S.*?)\s*$"),
    build=_three_fields,
)

DIRECTORY = LineMatcher(
    name="directory",
    pattern=re.compile(r"^\s*(\S.*?)/\s*$"),
    build=lambda found: Entry(group=found.group(1), title=DIRECTORY_MARKER),
)

BARE_TITLE = LineMatcher(
    name="bare_title",
    pattern=re.compile(r"^\s*(\S.*?)\s*$"),
    build=lambda found: Entry(title=found.group(1)),
)

LISTING_MATCHERS: List[LineMatcher] = [
    UUID_GROUP_TITLE,
    LOOSE_THREE_FIELD,
    DIRECTORY,
    BARE_TITLE,
]


def _is_layout_line(line: str) -> bool:
    stripped = line.strip()
    return not stripped or bool(DIVIDER.match(stripped)) or bool(HEADER.match(stripped))


def is_noise_line(line: str) -> bool:
    """Blank lines, dividers, column headers and prompt banners."""
    return _is_layout_line(strip_prompt_banner(line))


def parse_listing_line(line: str, matchers: Optional[List[LineMatcher]] = None) -> Optional[Entry]:
    """Parse a single listing line, or return None for noise lines."""
    if is_noise_line(line):
        return None
    line = strip_prompt_banner(line)
    for matcher in (matchers or LISTING_MATCHERS):
        entry = matcher.match(line)
        if entry is not None:
            return entry
    return None


def parse_listing_output(output: str, matchers: Optional[List[LineMatcher]] = None) -> ListingResult:
    """Parse ``keepassxc-cli ls -R -f`` output into a ListingResult."""
    raw_lines = output.splitlines()
    entries: List[Entry] = []
    for line in raw_lines:
        entry = parse_listing_line(line, matchers)
        if entry is not None:
            entries.append(entry)

    if entries:
        return ListingResult(status=ListingStatus.OK, entries=entries, raw_lines=raw_lines)

    # Blank lines, dividers and headers alone mean an empty database; anything
    # else that produced no entry (a lone prompt banner, say) is unrecognised.
    if any(not _is_layout_line(line) for line in raw_lines):
        logger.warning("Could not parse any entries from keepassxc-cli output; returning raw lines")
        return ListingResult(status=ListingStatus.UNPARSED, raw_lines=raw_lines)

    return ListingResult(status=ListingStatus.EMPTY, raw_lines=raw_lines)
