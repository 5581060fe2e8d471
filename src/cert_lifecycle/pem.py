"""RFC 1421 style PEM armour.

Certificates and CRLs are PEM-encoded by ``cryptography`` directly; this
module produces the CSR export format, where every line (markers included)
ends with the platform line terminator and base64 content is wrapped at
64 characters.
"""
from __future__ import annotations

import base64
import binascii
import os

PEM_LINE_LENGTH = 64
CSR_LABEL = "CERTIFICATE REQUEST"


def pem_encode(data: bytes, label: str, line_ending: str = os.linesep) -> str:
    """Wrap DER *data* in ``-----BEGIN <label>-----`` armour."""
    body = base64.b64encode(data).decode("ascii")
    lines = [f"-----BEGIN {label}-----"]
    lines.extend(
        body[i : i + PEM_LINE_LENGTH] for i in range(0, len(body), PEM_LINE_LENGTH)
    )
    lines.append(f"-----END {label}-----")
    return "".join(line + line_ending for line in lines)


def pem_decode(text: str, label: str) -> bytes:
    """Extract the DER body of the first *label* block in *text*.

    Raises
    ------
    ValueError
        If the markers are missing or the body is not valid base64.
    """
    begin = f"-----BEGIN {label}-----"
    end = f"-----END {label}-----"
    start = text.find(begin)
    if start == -1:
        raise ValueError(f"No {label!r} PEM block found")
    stop = text.find(end, start)
    if stop == -1:
        raise ValueError(f"Unterminated {label!r} PEM block")
    body = "".join(text[start + len(begin) : stop].split())
    try:
        return base64.b64decode(body, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Malformed base64 in {label!r} PEM block: {exc}") from exc


__all__ = ["CSR_LABEL", "PEM_LINE_LENGTH", "pem_decode", "pem_encode"]
