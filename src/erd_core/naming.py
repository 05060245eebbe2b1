"""식별자 변환 헬퍼: snake_case / PascalCase / camelCase, 단복수."""
from __future__ import annotations
import re

_WORD_SPLIT_RE = re.compile(r"[_\s\-]+")
_INVALID_RE = re.compile(r"[^\w]")


def camel_to_snake(name: str) -> str:
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    s2 = re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub("_+", "_", s2.replace("-", "_").replace(" ", "_")).strip("_").lower()


def to_pascal_case(name: str) -> str:
    words = [w for w in _WORD_SPLIT_RE.split(name) if w]
    # 이미 PascalCase/camelCase인 단어는 첫 글자만 올린다
    return "".join(w[:1].upper() + (w[1:] if not w.isupper() else w[1:].lower()) for w in words)


def to_camel_case(name: str) -> str:
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def sanitize_name(name: str) -> str:
    s = _INVALID_RE.sub("_", name)
    s = re.sub(r"^\d+", "", s)
    s = re.sub("_+", "_", s).strip("_")
    return s or "Unknown"


def pluralize(word: str) -> str:
    if not word:
        return word
    lower = word.lower()
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    lower = word.lower()
    if lower.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    # statuses, buses: 자음 + "us" 로 끝나는 단어의 복수형
    if lower.endswith("uses") and len(word) > 4 and lower[-5] not in "aeiou":
        return word[:-2]
    if lower.endswith(("sses", "xes", "zes", "ches", "shes")):
        return word[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return word[:-1]
    return word


def table_name_for(entity_name: str) -> str:
    return pluralize(camel_to_snake(entity_name))
