"""
Ranking of completion candidates.
"""
from typing import List, Sequence


def fuzzy_suggest(text: str, choices: Sequence[str]) -> List[str]:
    """Filters `choices` down to those matching `text`.

    Prefix matches come first, then choices containing `text` further in.
    Both groups keep their original order. Blank input matches everything.
    """
    needle = text.strip()
    if needle == "":
        return list(choices)
    starts_with = []
    contains = []
    for choice in choices:
        if choice.startswith(needle):
            starts_with.append(choice)
        elif choice.find(needle) > 0:
            contains.append(choice)
    return starts_with + contains
