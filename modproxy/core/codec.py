"""
Case-encoding of module paths and versions.

Module paths and versions end up as file names on case-insensitive file
systems, so every uppercase ASCII letter travels as ``!`` followed by its
lowercase form (``github.com/Azure`` -> ``github.com/!azure``).  The escaped
form never contains uppercase letters, which keeps the mapping one-to-one.

Decoded values are validated the same way the module tooling validates
them; anything that fails raises ``BadRequestError``.
"""

from __future__ import annotations

import string
from typing import Optional

from modproxy.core.errors import BadRequestError


_MOD_PATH_PUNCT = set("-._~")
_FIRST_ELEM_CHARS = set(string.ascii_lowercase + string.digits + "-.")
_FILE_NAME_PUNCT = set("!#$%&()+,-.=@[]^_{}~ ")

_BAD_WINDOWS_NAMES = {"CON", "PRN", "AUX", "NUL"} | {f"COM{i}" for i in range(1, 10)} | {f"LPT{i}" for i in range(1, 10)}


def _escape_string(s: str) -> Optional[str]:
    out = []
    for ch in s:
        if ch == "!" or ord(ch) >= 0x80:
            return None
        if "A" <= ch <= "Z":
            out.append("!" + ch.lower())
        else:
            out.append(ch)
    return "".join(out)


def _unescape_string(escaped: str) -> Optional[str]:
    out = []
    bang = False
    for ch in escaped:
        if ord(ch) >= 0x80:
            return None
        if bang:
            bang = False
            if not ("a" <= ch <= "z"):
                return None
            out.append(ch.upper())
            continue
        if ch == "!":
            bang = True
            continue
        if "A" <= ch <= "Z":
            return None
        out.append(ch)
    if bang:
        return None
    return "".join(out)


def _mod_path_ok(ch: str) -> bool:
    return ch in string.ascii_letters or ch in string.digits or ch in _MOD_PATH_PUNCT


def _file_name_ok(ch: str) -> bool:
    return ch in string.ascii_letters or ch in string.digits or ch in _FILE_NAME_PUNCT


def _check_elem(elem: str, *, file_name: bool) -> Optional[str]:
    if elem == "":
        return "empty path element"
    if elem.count(".") == len(elem):
        return f"invalid path element {elem!r}"
    if elem[0] == "." and not file_name:
        return "leading dot in path element"
    if elem[-1] == ".":
        return "trailing dot in path element"
    ok = _file_name_ok if file_name else _mod_path_ok
    for ch in elem:
        if not ok(ch):
            return f"invalid char {ch!r}"
    short = elem.split(".", 1)[0]
    if short.upper() in _BAD_WINDOWS_NAMES:
        return f"{short!r} disallowed as path element component on Windows"
    if file_name:
        return None
    # Windows short names (PROGRA~1)
    _, tilde, suffix = short.rpartition("~")
    if tilde and suffix.isdigit() and suffix.isascii():
        return "trailing tilde and digits in path element"
    return None


def _major_suffix_ok(path: str) -> bool:
    if path.startswith("gopkg.in/"):
        # gopkg.in/pkg.vN, optionally suffixed with -unstable
        i = len(path)
        if path.endswith("-unstable"):
            i -= len("-unstable")
        while i > 0 and path[i - 1].isdigit():
            i -= 1
        if i <= 1 or path[i - 1] != "v" or path[i - 2] != ".":
            return False
        major = path[i - 2 :]
        return not (len(major) <= 2 or (major[2] == "0" and major != ".v0"))
    i = len(path)
    dotted = False
    while i > 0 and (path[i - 1].isdigit() or path[i - 1] == "."):
        if path[i - 1] == ".":
            dotted = True
        i -= 1
    if i <= 1 or i == len(path) or path[i - 1] != "v" or path[i - 2] != "/":
        return True
    major = path[i - 2 :]
    if dotted or len(major) <= 2 or major[2] == "0" or major == "/v1":
        return False
    return True


def check_path(path: str) -> None:
    """Raise ``BadRequestError`` unless ``path`` is a valid module path."""

    def bad(reason: str) -> BadRequestError:
        return BadRequestError(f"malformed module path {path!r}: {reason}", module=path)

    if path == "":
        raise bad("empty string")
    if path[0] == "-":
        raise bad("leading dash")
    if "//" in path:
        raise bad("double slash")
    if path[-1] == "/":
        raise bad("trailing slash")
    if path[0] == "/":
        raise bad("leading slash")
    for elem in path.split("/"):
        reason = _check_elem(elem, file_name=False)
        if reason:
            raise bad(reason)
    first = path.split("/", 1)[0]
    if "." not in first:
        raise bad("missing dot in first path element")
    for ch in first:
        if ch not in _FIRST_ELEM_CHARS:
            raise bad(f"invalid char {ch!r} in first path element")
    if not _major_suffix_ok(path):
        raise bad("invalid version")


def check_version(version: str) -> None:
    """Raise ``BadRequestError`` unless ``version`` is usable as a file name element."""
    if "/" in version:
        raise BadRequestError(f"{version!r}: disallowed version string", version=version)
    reason = _check_elem(version, file_name=True)
    if reason:
        raise BadRequestError(f"{version!r}: disallowed version string ({reason})", version=version)


def escape_path(path: str) -> str:
    check_path(path)
    escaped = _escape_string(path)
    if escaped is None:
        raise BadRequestError(f"malformed module path {path!r}", module=path)
    return escaped


def escape_version(version: str) -> str:
    check_version(version)
    escaped = _escape_string(version)
    if escaped is None:
        raise BadRequestError(f"{version!r}: disallowed version string", version=version)
    return escaped


def unescape_path(escaped: str) -> str:
    path = _unescape_string(escaped)
    if path is None:
        raise BadRequestError(f"invalid escaped module path {escaped!r}", module=escaped)
    check_path(path)
    return path


def unescape_version(escaped: str) -> str:
    version = _unescape_string(escaped)
    if version is None:
        raise BadRequestError(f"invalid escaped version {escaped!r}", version=escaped)
    check_version(version)
    return version
