from __future__ import annotations

from typing import List, Sequence, Tuple, TypeVar

import polars as pl

T = TypeVar("T")


def rank_by_score(
    items: Sequence[T],
    scores: Sequence[float],
    limit: int,
    descending: bool = True,
) -> List[Tuple[T, float]]:
    """
    Sort `items` by their scores and keep the first `limit`.

    The sort is stable: items with equal scores keep their input order.
    Returns `(item, score)` pairs in rank order.
    """
    if limit <= 0 or not items:
        return []
    if len(items) != len(scores):
        raise ValueError("items and scores must have the same length")

    frame = pl.DataFrame(
        {
            "position": list(range(len(items))),
            "score": [float(s) for s in scores],
        },
        schema={"position": pl.Int64, "score": pl.Float64},
    )
    ranked = frame.sort("score", descending=descending, maintain_order=True).head(limit)

    return [
        (items[position], score)
        for position, score in zip(
            ranked.get_column("position").to_list(),
            ranked.get_column("score").to_list(),
        )
    ]
