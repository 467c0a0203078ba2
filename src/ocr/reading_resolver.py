"""
Odometer reading disambiguation.

Picks the single most likely odometer value out of the numeric candidates
found in one OCR result, using two pieces of domain knowledge:
- odometers show realistic values, so [PLAUSIBLE_MIN_KM, PLAUSIBLE_MAX_KM]
  is preferred over stray small or huge numbers
- odometers never go down, so with a previous reading the closest value at
  or above it wins

Without a previous reading the largest plausible value wins. That can
misfire on dashboards that also show a trip counter or a clock; digit
positions are not used to tell them apart.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from src.config import PLAUSIBLE_MIN_KM, PLAUSIBLE_MAX_KM, MAX_ALTERNATIVES
from src.ocr.candidate_extractor import Candidate, Number, extract_candidates
from src.ocr.text_normalizer import normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadingResolution:
    """Best odometer value plus ranked alternatives from one OCR result."""

    best_candidate: Optional[Number] = None
    """Most likely reading, or None if no candidate was found."""

    alternatives: Tuple[Number, ...] = ()
    """Other values in extraction order; never contains best_candidate."""

    reference_value: Optional[Number] = None
    """Previously known reading used for disambiguation, if any."""

    @property
    def found(self) -> bool:
        return self.best_candidate is not None

    @property
    def choices(self) -> Tuple[Number, ...]:
        """Every value the user may confirm: best first, then alternatives."""
        if self.best_candidate is None:
            return ()
        return (self.best_candidate,) + self.alternatives

    def to_dict(self) -> dict:
        return {
            'best_candidate': self.best_candidate,
            'alternatives': list(self.alternatives),
            'reference_value': self.reference_value,
        }


def is_plausible(value: Number) -> bool:
    """True if the value lies in the realistic odometer window."""
    return PLAUSIBLE_MIN_KM <= value <= PLAUSIBLE_MAX_KM


def _pick_best(pool: List[Number], reference_value: Optional[Number]) -> Number:
    if reference_value is not None and reference_value > 0:
        # Odometers only go up: closest value at or above the last reading
        valid = [v for v in pool if v >= reference_value]
        if valid:
            return min(valid)

        # Everything is below the reference, so either this photo or the
        # previous reading was misread; trust the largest digit run
        logger.info(
            f"All candidates {pool} below reference {reference_value}; "
            "falling back to largest candidate"
        )
        return max(pool)

    return max(pool)


def resolve_reading(
    candidates: Sequence[Candidate],
    reference_value: Optional[Number] = None,
    max_alternatives: int = MAX_ALTERNATIVES
) -> ReadingResolution:
    """
    Pick the best odometer reading and rank the rest as alternatives.

    Pure function: identical inputs always give an identical resolution.
    Alternatives keep extraction order but are de-duplicated by value, so a
    number read twice takes only one of the max_alternatives slots.

    Args:
        candidates: Candidates in extraction order
        reference_value: Previously known odometer reading (None or 0 = unknown)
        max_alternatives: Maximum number of alternatives to keep

    Returns:
        ReadingResolution; best_candidate is None when candidates is empty
    """
    if not candidates:
        return ReadingResolution(reference_value=reference_value)

    values = [c.value for c in candidates]

    plausible = [v for v in values if is_plausible(v)]
    pool = plausible if plausible else values
    if not plausible:
        logger.debug(f"No plausible candidates in {values}; using all candidates")

    best = _pick_best(pool, reference_value)

    alternatives = []
    for value in values:
        if value == best or value in alternatives:
            continue
        alternatives.append(value)

    resolution = ReadingResolution(
        best_candidate=best,
        alternatives=tuple(alternatives[:max_alternatives]),
        reference_value=reference_value,
    )
    logger.debug(f"Resolved {values} (reference={reference_value}) -> {resolution}")
    return resolution


def read_odometer(text: str, reference_value: Optional[Number] = None) -> ReadingResolution:
    """
    Normalize raw OCR text, extract candidates and resolve them.

    Examples:
        >>> read_odometer("O123b").best_candidate
        1236
        >>> read_odometer("4521 km 4800", reference_value=4600).best_candidate
        4800
    """
    return resolve_reading(extract_candidates(normalize_text(text)), reference_value)
