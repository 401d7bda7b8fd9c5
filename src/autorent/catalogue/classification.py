"""Category inference from free-text vehicle class, make and model."""
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from ..models import CatalogueSnapshot, Category
from .hashing import bucket

SUV_CLASS_TOKENS = ("suv", "sport utility", "truck")
SUV_MODEL_TOKENS = ("suv",)
SUV_MAKES = ("jeep", "land rover", "range rover")

SPORT_CLASS_TOKENS = ("sport", "coupe", "convertible", "roadster", "supercar", "muscle", "performance")
SPORT_MODEL_TOKENS = ("sport", "gt", "gti", "turbo", "rs", "m3", "m5", "amg", "type r", "sti", "wrx")
SPORT_MAKES = ("ferrari", "lamborghini", "maserati", "aston martin", "mclaren", "bugatti", "koenigsegg", "pagani")
SPORT_MODELS = (
    "corvette",
    "camaro",
    "challenger",
    "mustang",
    "viper",
    "gt-r",
    "supra",
    "rx-7",
    "nsx",
    "911",
    "boxster",
    "cayman",
)

SEDAN_CLASS_TOKENS = ("sedan", "saloon", "compact", "midsize", "full-size", "luxury", "executive")
SEDAN_MODEL_TOKENS = ("sedan",)

# Order matters: the fallback indexes into this list.
FALLBACK_CATEGORIES = (Category.SEDAN, Category.SPORT, Category.SUV)


def _contains_any(text: str, tokens: tuple[str, ...]) -> bool:
    return any(token in text for token in tokens)


def classify(make: Optional[str], model: Optional[str], vehicle_class: Optional[str]) -> Category:
    """Return the catalogue category for a vehicle.

    Rules are checked in order (SUV, Sport, Sedan) and the first match wins.
    Vehicles matching no rule are spread over the categories by a hash of
    ``make + model`` so the same vehicle always lands in the same category.
    """

    make_text = (make or "").lower()
    model_text = (model or "").lower()
    class_text = (vehicle_class or "").lower()

    if (
        _contains_any(class_text, SUV_CLASS_TOKENS)
        or _contains_any(model_text, SUV_MODEL_TOKENS)
        or _contains_any(make_text, SUV_MAKES)
    ):
        return Category.SUV

    if (
        _contains_any(class_text, SPORT_CLASS_TOKENS)
        or _contains_any(model_text, SPORT_MODEL_TOKENS)
        or _contains_any(make_text, SPORT_MAKES)
        or _contains_any(model_text, SPORT_MODELS)
    ):
        return Category.SPORT

    if _contains_any(class_text, SEDAN_CLASS_TOKENS) or _contains_any(model_text, SEDAN_MODEL_TOKENS):
        return Category.SEDAN

    # No delimiter between make and model: cached classifications depend on it.
    return FALLBACK_CATEGORIES[bucket(make_text + model_text, len(FALLBACK_CATEGORIES))]


def reclassify(snapshot: CatalogueSnapshot) -> CatalogueSnapshot:
    """Re-derive ``type`` for every record, leaving all other fields untouched."""

    records = []
    for record in snapshot:
        category = classify(record.make, record.model, record.vehicle_class)
        records.append(record if category is record.type else replace(record, type=category))
    return CatalogueSnapshot.of(records)
