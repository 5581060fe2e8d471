"""Distinguished-name parsing."""
from __future__ import annotations

from cryptography import x509
from cryptography.x509.oid import NameOID

from cert_lifecycle.errors import InvalidSubjectError

# Short names accepted on top of the RFC 4514 set.
_ATTR_NAME_OVERRIDES = {
    "E": NameOID.EMAIL_ADDRESS,
    "EMAILADDRESS": NameOID.EMAIL_ADDRESS,
    "SERIALNUMBER": NameOID.SERIAL_NUMBER,
}

_SEPARATORS = ",+"


def _strip_separator_whitespace(text: str) -> str:
    """Drop unescaped blanks around ``,`` and ``+`` outside quoted values.

    ``"CN=user, O=Org"`` becomes ``"CN=user,O=Org"``; ``"CN=a\\, b"`` is
    left alone.
    """
    out: list[str] = []
    # Characters up to this index are escaped or quoted and must survive.
    protected = 0
    in_quotes = False
    skip_blanks = False
    index = 0
    while index < len(text):
        char = text[index]
        if skip_blanks and char == " ":
            index += 1
            continue
        skip_blanks = False
        if char == "\\" and index + 1 < len(text):
            out.append(text[index : index + 2])
            protected = len(out)
            index += 2
            continue
        if char == '"':
            in_quotes = not in_quotes
        elif char in _SEPARATORS and not in_quotes:
            while len(out) > protected and out[-1] == " ":
                out.pop()
            skip_blanks = True
        out.append(char)
        if in_quotes:
            protected = len(out)
        index += 1
    return "".join(out)


def parse_distinguished_name(subject_name: str) -> x509.Name:
    """Parse a string such as ``"CN=RootCA,O=Org,C=SA"``.

    Blanks around the ``,`` and ``+`` separators are ignored, so
    ``"CN=RootCA, O=Org, C=SA"`` gives the same name.

    RDN order follows RFC 4514: the string lists the most specific RDN
    first, so the encoded sequence runs C, O, CN for the example above.
    ``name.rfc4514_string()`` gives back the input order.

    Raises
    ------
    InvalidSubjectError
        If the string is empty or not a valid RFC 4514 distinguished name.
    """
    if not isinstance(subject_name, str):
        raise InvalidSubjectError(repr(subject_name), "subject name must be a string")
    if not subject_name.strip():
        raise InvalidSubjectError(subject_name, "subject name is empty")
    try:
        name = x509.Name.from_rfc4514_string(
            _strip_separator_whitespace(subject_name.strip()),
            attr_name_overrides=_ATTR_NAME_OVERRIDES,
        )
    except ValueError as exc:
        reason = str(exc) or "not a valid RFC 4514 distinguished name"
        raise InvalidSubjectError(subject_name, reason) from exc
    if len(name) == 0:
        raise InvalidSubjectError(subject_name, "no attributes parsed")
    return name


def format_distinguished_name(name: x509.Name) -> str:
    """Render *name* back to its RFC 4514 string form."""
    return name.rfc4514_string()


__all__ = ["format_distinguished_name", "parse_distinguished_name"]
