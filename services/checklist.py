# ============================================================================
# MARKDOWN CHECKLIST PARSING
# ============================================================================
# EPOCH: 1 - CYCLE ORCHESTRATION
# STATUS: Service helper - Task list format shared by discoverer and planner
# PURPOSE: Parse and match "- [ ] item" lines in plan documents
# CREATED: 17 OCT 2026
# ============================================================================
"""
Checklist Parsing

Task lists are markdown checklists:

    - [ ] [P0] Add retry to the uploader
      Context lines indented under the item are carried along.
    - [ ] Rename the config module (sequential)
    - [x] Already done

A [P0]/[P1]/[P2] tag sets priority; "(sequential)" marks a task that
must not share a batch with others.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from core.contracts import TaskPriority

ITEM_PATTERN = re.compile(r"^(?P<indent>\s*)[-*]\s+\[(?P<mark>[ xX])\]\s+(?P<text>.+?)\s*$")
PRIORITY_PATTERN = re.compile(r"\[(P[0-2])\]", re.IGNORECASE)
SEQUENTIAL_PATTERN = re.compile(r"\(sequential\)", re.IGNORECASE)


@dataclass
class ChecklistItem:
    line_index: int
    text: str
    checked: bool
    priority: TaskPriority
    parallel: bool
    context_lines: List[str]

    @property
    def description(self) -> str:
        return clean_description(self.text)

    @property
    def key(self) -> str:
        return normalize(self.text)


def clean_description(text: str) -> str:
    """Drop priority tags and the sequential marker."""
    text = PRIORITY_PATTERN.sub("", text)
    text = SEQUENTIAL_PATTERN.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def normalize(text: str) -> str:
    """Matching key: cleaned, lowercased, no trailing punctuation."""
    return clean_description(text).lower().rstrip(".:;")


def parse_checklist(document: Optional[str]) -> List[ChecklistItem]:
    """All checklist items in document order."""
    if not document:
        return []

    lines = document.splitlines()
    items: List[ChecklistItem] = []
    current: Optional[ChecklistItem] = None
    current_indent = 0

    for index, line in enumerate(lines):
        match = ITEM_PATTERN.match(line)
        if match:
            text = match.group("text")
            priority_match = PRIORITY_PATTERN.search(text)
            current = ChecklistItem(
                line_index=index,
                text=text,
                checked=match.group("mark").lower() == "x",
                priority=TaskPriority(priority_match.group(1).upper()) if priority_match else TaskPriority.P1,
                parallel=SEQUENTIAL_PATTERN.search(text) is None,
                context_lines=[],
            )
            current_indent = len(match.group("indent"))
            items.append(current)
            continue

        # Indented continuation lines belong to the item above
        stripped = line.strip()
        indent = len(line) - len(line.lstrip())
        if current is not None and stripped and indent > current_indent:
            current.context_lines.append(stripped)
        elif stripped:
            current = None

    return items


def unchecked_items(document: Optional[str]) -> List[ChecklistItem]:
    return [item for item in parse_checklist(document) if not item.checked]


__all__ = [
    "ChecklistItem",
    "clean_description",
    "normalize",
    "parse_checklist",
    "unchecked_items",
]
