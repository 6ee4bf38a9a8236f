"""Defect tag grammar used inside a case's comment text.

Cases hold their defects as a list of ``DefectTag``. The remote store only
has a single free-text comment column, so defects are folded into it as::

    Left on site during the night shift | [MISSING: SOCKET B] [DAMAGED: DRIVER]

``compose_comment`` and ``split_comment`` convert between the two forms and
are only called at the store boundary.
"""

import re

from kit_ledger.database.models import DefectTag
from kit_ledger.utils.constants import DEFECT_DAMAGED, DEFECT_MISSING
from kit_ledger.utils.formatters import normalize_part_name

NOTES_SEPARATOR = " | "

_TAG_RE = re.compile(r"\[(MISSING|DAMAGED):\s*([^\]]*)\]", re.IGNORECASE)
_TAG_SECTION_RE = re.compile(
    r"^(?:\s*\[(?:MISSING|DAMAGED):[^\]]*\])+\s*$", re.IGNORECASE
)


def format_defect_tags(defects: list[DefectTag]) -> str:
    """Render defects as '[MISSING: A, B] [DAMAGED: C]'."""
    sections = []
    for kind in (DEFECT_MISSING, DEFECT_DAMAGED):
        parts = [normalize_part_name(d.part) for d in defects if d.defect == kind]
        if parts:
            sections.append(f"[{kind}: {', '.join(parts)}]")
    return " ".join(sections)


def _quote_lookalikes(notes: str) -> str:
    """Bracket tags typed as free text become parenthesized.

    Only a ``|`` segment made up entirely of tags reads back as defects,
    so such segments in the notes are the ones that need quoting.
    """
    pieces = notes.split("|")
    return "|".join(
        _TAG_RE.sub(lambda m: f"({m.group(0)[1:-1]})", piece)
        if _TAG_SECTION_RE.match(piece.strip()) else piece
        for piece in pieces
    )


def compose_comment(notes: str, defects: list[DefectTag]) -> str:
    tags = format_defect_tags(defects)
    notes = _quote_lookalikes((notes or "").strip())
    if notes and tags:
        return f"{notes}{NOTES_SEPARATOR}{tags}"
    return notes or tags


def parse_defect_tags(text: str) -> list[DefectTag]:
    """Extract every tagged part from a comment, upper-cased."""
    defects = []
    for kind, body in _TAG_RE.findall(text or ""):
        for part in body.split(","):
            name = normalize_part_name(part)
            if name:
                defects.append(DefectTag(name, kind.upper()))
    return defects


def split_comment(comment: str) -> tuple[str, list[DefectTag]]:
    """Separate a stored comment into free-text notes and defects.

    Tags count only when they fill a whole ``|`` segment; a tag-like
    phrase inside a sentence stays part of the notes.
    """
    notes, defects = [], []
    for piece in (comment or "").split("|"):
        piece = piece.strip()
        if not piece:
            continue
        if _TAG_SECTION_RE.match(piece):
            defects.extend(parse_defect_tags(piece))
        else:
            notes.append(piece)
    return NOTES_SEPARATOR.join(notes), defects


def defect_part_names(defects: list[DefectTag]) -> set[str]:
    return {normalize_part_name(d.part) for d in defects}
