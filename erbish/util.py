from typing import Dict, Iterable

import structlog

log = structlog.get_logger(__name__)
utf8_bom = b"\xef\xbb\xbf"

def strip_utf8_bom(data: bytes) -> bytes:
    # removes the utf-8 byte order mark from byte data if present.
    if data.startswith(utf8_bom):
        return data[len(utf8_bom):]
    return data

def parse_user_vars(pairs: Iterable[str]) -> Dict[str, str]:
    # turns 'key=value' strings into a dict; entries without '=' are skipped.
    user_vars: Dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            log.warning("ignoring_malformed_user_var", value=pair)
            continue
        key, value = pair.split("=", 1)
        user_vars[key.strip()] = value
    return user_vars

def line_number_at(text: str, offset: int) -> int:
    # 1-based line number of a character offset.
    return text.count("\n", 0, offset) + 1
