"""Fuzzy lookup of column names for friendlier "column not found" errors."""

from typing import Optional

from rapidfuzz import fuzz


def closest_column(name: str, columns: list[str], threshold: int = 75) -> Optional[str]:
    """Return the most similar existing column, or None below ``threshold``."""
    best_col = None
    best_score = 0
    for col in columns:
        score = fuzz.ratio(name.lower(), col.lower())
        if score > best_score:
            best_score = score
            best_col = col

    if best_score >= threshold:
        return best_col
    return None


def missing_column_message(name: str, columns: list[str]) -> str:
    message = f"Column '{name}' not found in dataset"
    suggestion = closest_column(name, columns)
    if suggestion:
        message += f". Did you mean '{suggestion}'?"
    return message
