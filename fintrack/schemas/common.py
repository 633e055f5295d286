def positive_finite(v: float | None) -> float | None:
    if v is None:
        return None
    if v != v:
        raise ValueError("amount must be a number")
    if v == float("inf") or v == float("-inf"):
        raise ValueError("amount must be finite")
    if v <= 0:
        raise ValueError("amount must be greater than zero")
    return v


def trim_or_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None
