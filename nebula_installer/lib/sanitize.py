from __future__ import annotations

ESC = "\x1b"
BEL = "\x07"


def _is_control(ch: str) -> bool:
    o = ord(ch)
    return o < 0x20 or o == 0x7F


def sanitize_log_line(line: str | bytes) -> str:
    """Strip terminal escape sequences and control characters, then trim.

    Handles:
    - CSI: ESC [ params... final byte (0x40-0x7E)
    - OSC: ESC ] ... terminated by BEL or ESC \\
    - any other two-character ESC sequence
    - remaining ASCII control characters

    An unterminated sequence at the end of input is dropped.
    """

    if isinstance(line, (bytes, bytearray)):
        line = bytes(line).decode("utf-8", errors="replace")

    out: list[str] = []
    n = len(line)
    i = 0
    while i < n:
        ch = line[i]
        if ch == ESC:
            i += 1
            if i >= n:
                break
            kind = line[i]
            i += 1
            if kind == "[":
                while i < n:
                    b = ord(line[i])
                    i += 1
                    if 0x40 <= b <= 0x7E:
                        break
            elif kind == "]":
                while i < n:
                    if line[i] == BEL:
                        i += 1
                        break
                    if line[i] == ESC and i + 1 < n and line[i + 1] == "\\":
                        i += 2
                        break
                    i += 1
            continue
        if _is_control(ch):
            i += 1
            continue
        out.append(ch)
        i += 1

    return "".join(out).strip()
