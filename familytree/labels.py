from __future__ import annotations

# relation -> (male, female, neutral)
_GENDERED_TERMS: dict[str, tuple[str, str, str]] = {
    "spouse": ("husband", "wife", "spouse"),
    "parent": ("father", "mother", "parent"),
    "child": ("son", "daughter", "child"),
    "grandparent": ("grandfather", "grandmother", "grandparent"),
    "grandchild": ("grandson", "granddaughter", "grandchild"),
    "sibling": ("brother", "sister", "sibling"),
    "elder_avuncular": ("uncle", "aunt", "aunt/uncle"),
    "younger_avuncular": ("nephew", "niece", "niece/nephew"),
}

_ORDINAL_WORDS = (
    "first",
    "second",
    "third",
    "fourth",
    "fifth",
    "sixth",
    "seventh",
    "eighth",
    "ninth",
    "tenth",
)


def gendered(relation: str, gender: str | None) -> str:
    """Pick the term for ``relation`` given the gender of the person it describes."""

    male, female, neutral = _GENDERED_TERMS[relation]
    if gender == "male":
        return male
    if gender == "female":
        return female
    return neutral


def great_prefix(count: int) -> str:
    return "great-" * max(0, count)


def ordinal(n: int) -> str:
    """1 -> "first" ... 10 -> "tenth", then "11th", "12th", "21st", ..."""

    if 1 <= n <= len(_ORDINAL_WORDS):
        return _ORDINAL_WORDS[n - 1]
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def lineal_label(degree: int, *, ascending: bool, gender: str | None) -> str:
    """Label for a direct line relation ``degree`` generations apart.

    1 -> father/son, 2 -> grandfather/grandson, 3 -> great-grandfather, ...
    """

    if degree <= 1:
        return gendered("parent" if ascending else "child", gender)
    base = gendered("grandparent" if ascending else "grandchild", gender)
    return great_prefix(degree - 2) + base


def avuncular_label(*, elder: bool, gender: str | None) -> str:
    return gendered("elder_avuncular" if elder else "younger_avuncular", gender)


def cousin_label(degree: int, removal: int) -> str:
    label = f"{ordinal(degree)} cousin"
    if removal > 0:
        label += f" {removal}× removed"
    return label
