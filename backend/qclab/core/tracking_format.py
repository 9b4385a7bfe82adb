"""Tracking-number format templates.

A template is literal text with placeholders:

    {lab}       laboratory code
    {year}      four-digit year
    {yy}        two-digit year
    {origin}    upper-cased origin code (empty when absent)
    {seq}       sequence number, optionally padded: {seq:05d}

e.g. ``WAQC-{lab}-{year}-{seq:05d}`` or ``B-{seq:05d}-25``.

The sequence itself is allocated by the database; these helpers validate
templates and recognise the strings it produces.
"""

import re

PLACEHOLDER_RE = re.compile(r"\{(\w+)(?::([^}]*))?\}")
_SEQ_SPEC_RE = re.compile(r"^0?(\d*)d$")

_PLACEHOLDER_PATTERNS = {
    "lab": r"[A-Za-z0-9]+",
    "year": r"\d{4}",
    "yy": r"\d{2}",
    "origin": r"[A-Za-z0-9]*",
}


def sequence_width(spec: str | None) -> int:
    if not spec:
        return 0
    match = _SEQ_SPEC_RE.match(spec)
    if match is None:
        raise ValueError(f"Unsupported sequence format '{spec}'.")
    return int(match.group(1) or 0)


def validate_template(template: str) -> str:
    """Check placeholders are known and a sequence is present."""
    names = []
    for match in PLACEHOLDER_RE.finditer(template):
        name, spec = match.group(1), match.group(2)
        if name == "seq":
            sequence_width(spec)
        elif name not in _PLACEHOLDER_PATTERNS:
            raise ValueError(f"Unknown placeholder '{{{name}}}' in tracking number format.")
        names.append(name)
    if "seq" not in names:
        raise ValueError("Tracking number format must contain a {seq} placeholder.")
    return template


def tracking_number_pattern(template: str) -> re.Pattern:
    """Compile a regex matching any rendering of ``template``."""
    parts = []
    pos = 0
    for match in PLACEHOLDER_RE.finditer(template):
        parts.append(re.escape(template[pos:match.start()]))
        name, spec = match.group(1), match.group(2)
        if name == "seq":
            width = sequence_width(spec)
            parts.append(rf"\d{{{width},}}" if width else r"\d+")
        elif name in _PLACEHOLDER_PATTERNS:
            parts.append(_PLACEHOLDER_PATTERNS[name])
        else:
            raise ValueError(f"Unknown placeholder '{{{name}}}' in tracking number format.")
        pos = match.end()
    parts.append(re.escape(template[pos:]))
    return re.compile("^" + "".join(parts) + "$")


def matches_format(tracking_number: str, template: str) -> bool:
    return tracking_number_pattern(template).match(tracking_number) is not None
