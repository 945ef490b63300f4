from __future__ import annotations

from html import escape
from typing import Iterable, Optional, Tuple


def format_submission_note(
    form_name: str,
    source: str,
    fields: Iterable[Tuple[str, Optional[str]]],
) -> str:
    """Render the HTML note attached to a lead and its person.

    Fields without a value are skipped; the rest keep the order they are given
    in, one ``label: value`` line each.
    """
    lines = [
        f"<span><strong>{escape(label)}:</strong> {_render_value(value)}</span>"
        for label, value in fields
        if value
    ]
    header = (
        f"<b>Form Submission - Source: {escape(form_name)}</b><br>"
        f"<i>Submitted from: {escape(source)}</i><br><br>"
    )
    return header + "<br>".join(lines)


def _render_value(value: str) -> str:
    return "<br>".join(escape(line) for line in value.splitlines())
