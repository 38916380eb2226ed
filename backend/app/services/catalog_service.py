r"""backend\app\services\catalog_service.py

Static medicine catalogue and the rule tables that classify medicines.

Medicines are classified by keyword containment against their display name.
Three independent rule tables drive the forecasts:

* seasonal groups, each owning a 12-month demand pattern (January first),
* volume tiers, each owning a flat demand multiplier,
* stock tiers, each owning the range current stock levels are drawn from.

Rules are evaluated in declaration order and the first group with a matching
keyword wins.  Names that match nothing fall back to a flat pattern, the
``standard`` multiplier and neutral weather factors, so every lookup here is
total over arbitrary strings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models.schemas import MedicineInfo, Weather

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Catalogue


MEDICINE_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "Pain & Fever": (
        "Crocin (Paracetamol)",
        "Dolo 650 (Paracetamol)",
        "Combiflam (Ibuprofen+Paracetamol)",
        "Disprin (Aspirin)",
        "Brufen (Ibuprofen)",
        "Nise (Nimesulide)",
        "Voveran (Diclofenac)",
        "Ultracet (Tramadol)",
        "Sumo (Nimesulide+Paracetamol)",
        "Saridon (Paracetamol+Caffeine)",
    ),
    "Cough & Cold": (
        "Benadryl Syrup (Cough)",
        "Cetirizine (Anti-allergy)",
        "Allegra (Fexofenadine)",
        "Montair LC (Montelukast)",
        "Sinarest (Cold Relief)",
        "Vicks VapoRub",
        "Otrivin Nasal Spray",
        "Asthalin Inhaler",
        "Levolin Inhaler",
        "Grilinctus Syrup",
        "Chericof Syrup",
        "Honitus Syrup",
    ),
    "Digestive & Gastric": (
        "Digene (Antacid)",
        "Gelusil MPS (Antacid)",
        "Eno (Antacid)",
        "Pan D (Pantoprazole)",
        "Omez (Omeprazole)",
        "Ranitidine",
        "Dulcolax (Laxative)",
        "Cremaffin (Laxative)",
        "Imodium (Anti-diarrheal)",
        "Norflox TZ (Antibiotic)",
        "ORS Electral",
        "Econorm (Probiotic)",
        "Enterogermina (Probiotic)",
    ),
    "Vitamins & Supplements": (
        "Livogen (Iron+Folic Acid)",
        "Shelcal (Calcium+D3)",
        "Becosules (B-Complex)",
        "Supradyn (Multivitamin)",
        "Zincovit (Zinc+Vitamins)",
        "Limcee (Vitamin C)",
        "Evion (Vitamin E)",
        "Revital (Multivitamin)",
        "A to Z NS (Multivitamin)",
        "Calcimax P (Calcium)",
    ),
    "Skin Care": (
        "Neutrogena Sunscreen",
        "Betadine (Antiseptic)",
        "Soframycin (Antibiotic Cream)",
        "Candid B (Antifungal)",
        "Clobetasol Cream",
        "Dermadew Soap",
        "Lacto Calamine Lotion",
        "Boroline (Antiseptic Cream)",
        "Dettol Antiseptic",
        "Himalaya Neem Face Wash",
    ),
    "Eye & Ear Care": (
        "Ciprofloxacin Eye Drops",
        "Moxifloxacin Eye Drops",
        "Tears Naturale (Eye Lubricant)",
        "Otorex Ear Drops",
        "Ciplox D Eye Drops",
    ),
    "Antibiotics": (
        "Amoxicillin",
        "Azithromycin (Azee)",
        "Ciprofloxacin",
        "Metronidazole (Flagyl)",
        "Cefixime (Zifi)",
        "Augmentin (Amox+Clav)",
        "Ofloxacin",
        "Doxycycline",
    ),
    "Diabetes Care": (
        "Metformin",
        "Glimepiride",
        "Glucometer Strips",
        "Insulin Syringes",
    ),
    "Cardiac & BP": (
        "Amlodipine",
        "Atenolol",
        "Telmisartan",
        "Aspirin 75mg (Ecosprin)",
        "Atorvastatin",
        "Clopidogrel",
    ),
    "Women's Health": (
        "Meftal Spas (Mefenamic)",
        "Cyclopam (Antispasmodic)",
        "Folvite (Folic Acid)",
        "Dydrogesterone",
        "i-Pill (Emergency Contraceptive)",
    ),
    "First Aid": (
        "Electral (ORS)",
        "Band-Aid",
        "Cotton Roll",
        "Surgical Tape",
        "Thermometer",
        "BP Monitor",
        "Pulse Oximeter",
    ),
    "Muscle & Joint": (
        "Volini Gel",
        "Moov Spray",
        "Iodex Balm",
        "Flexon MR (Muscle Relaxant)",
        "Thiocolchicoside",
    ),
}

DEFAULT_CATEGORY = "Other"

# Sold but not filed under any category; they report as ``DEFAULT_CATEGORY``.
UNCATEGORISED_MEDICINES: Tuple[str, ...] = ("Alprazolam", "Clonazepam", "Melatonin")

DEFAULT_MEDICINES: Tuple[str, ...] = tuple(
    name for names in MEDICINE_CATEGORIES.values() for name in names
) + UNCATEGORISED_MEDICINES


# ---------------------------------------------------------------------------
# Rule tables


@dataclass(frozen=True)
class KeywordRule:
    """A named group selected when any keyword is contained in the name."""

    group: str
    keywords: Tuple[str, ...]

    def matches(self, name: str) -> bool:
        return any(keyword in name for keyword in self.keywords)


FLAT_PATTERN: Tuple[float, ...] = (1.0,) * 12

SEASONAL_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("summer_peak", ("Electral", "ORS", "Neutrogena", "Eno", "Gelusil")),
    KeywordRule(
        "winter_peak",
        ("Crocin", "Dolo", "Benadryl", "Sinarest", "Vicks", "Grilinctus", "Chericof", "Honitus"),
    ),
    KeywordRule(
        "monsoon_peak",
        ("Norflox", "Metronidazole", "Imodium", "Econorm", "Enterogermina", "Ciprofloxacin"),
    ),
    KeywordRule("spring_peak", ("Cetirizine", "Allegra", "Montair")),
    KeywordRule(
        "new_year_peak",
        ("Livogen", "Shelcal", "Becosules", "Supradyn", "Zincovit", "Revital", "A to Z"),
    ),
    KeywordRule(
        "mild_winter_peak",
        ("Combiflam", "Brufen", "Nise", "Voveran", "Ultracet", "Sumo", "Saridon"),
    ),
    KeywordRule("musculoskeletal", ("Volini", "Moov", "Iodex", "Flexon", "Thiocolchicoside")),
)

SEASONAL_PATTERNS: Mapping[str, Tuple[float, ...]] = MappingProxyType(
    {
        "summer_peak": (0.6, 0.7, 0.9, 1.3, 1.5, 1.6, 1.4, 1.2, 1.0, 0.8, 0.6, 0.5),
        "winter_peak": (1.4, 1.3, 1.1, 0.8, 0.6, 0.5, 0.6, 0.8, 1.0, 1.2, 1.4, 1.5),
        "monsoon_peak": (0.7, 0.7, 0.8, 0.9, 1.0, 1.3, 1.5, 1.4, 1.3, 1.0, 0.8, 0.7),
        "spring_peak": (0.8, 0.9, 1.3, 1.5, 1.4, 1.1, 0.9, 0.8, 0.9, 1.1, 1.0, 0.8),
        "new_year_peak": (1.4, 1.3, 1.1, 1.0, 0.9, 0.9, 0.9, 0.9, 1.0, 1.0, 1.1, 1.2),
        "mild_winter_peak": (1.2, 1.1, 1.0, 0.9, 0.9, 0.8, 0.9, 0.9, 1.0, 1.1, 1.2, 1.3),
        "musculoskeletal": (1.3, 1.2, 1.0, 0.9, 0.8, 0.7, 0.8, 0.9, 1.0, 1.1, 1.3, 1.4),
        "flat": FLAT_PATTERN,
    }
)

VOLUME_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("high", ("Crocin", "Dolo", "Paracetamol", "Cetirizine", "Electral", "ORS")),
    KeywordRule("medium_high", ("Benadryl", "Digene", "Combiflam", "Pan D", "Omez")),
    KeywordRule("medium", ("Livogen", "Shelcal", "Becosules", "Vicks", "Betadine")),
    KeywordRule("specialty", ("Insulin", "Glucometer", "BP Monitor", "Pulse Oximeter")),
)

VOLUME_MULTIPLIERS: Mapping[str, float] = MappingProxyType(
    {
        "high": 1.4,
        "medium_high": 1.2,
        "medium": 1.0,
        "specialty": 0.6,
        "standard": 0.9,
    }
)

STOCK_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("critically_low", ("Dolo", "Cetirizine", "Benadryl")),
    KeywordRule("moderately_low", ("Sinarest", "Allegra", "Montair", "Vicks")),
    KeywordRule("high_demand", ("Crocin", "Dolo", "Paracetamol", "Cetirizine", "ORS", "Electral")),
    KeywordRule("medium_demand", ("Benadryl", "Digene", "Combiflam", "Pan D", "Omez", "Vicks")),
    KeywordRule("specialty", ("Insulin", "Glucometer", "BP Monitor", "Pulse Oximeter")),
)

# Half-open ranges [low, high) of units on hand.
STOCK_RANGES: Mapping[str, Tuple[int, int]] = MappingProxyType(
    {
        "critically_low": (50, 250),
        "moderately_low": (200, 600),
        "high_demand": (400, 1200),
        "medium_demand": (600, 1800),
        "specialty": (100, 400),
        "default": (500, 1500),
    }
)

# Demand factor per weather condition, keyed by a brand keyword.
WEATHER_RULES: Tuple[Tuple[KeywordRule, Mapping[Weather, float]], ...] = (
    (
        KeywordRule("ors", ("Electral", "ORS")),
        {Weather.HOT: 1.8, Weather.CLOUDY: 0.8, Weather.RAINY: 0.48},
    ),
    (
        KeywordRule("sunscreen", ("Neutrogena", "Sunscreen")),
        {Weather.HOT: 1.52, Weather.CLOUDY: 0.6, Weather.RAINY: 0.32},
    ),
    (
        KeywordRule("antacid", ("Digene",)),
        {Weather.HOT: 0.88, Weather.CLOUDY: 1.0, Weather.RAINY: 0.72},
    ),
    (
        KeywordRule("crocin", ("Crocin",)),
        {Weather.HOT: 0.72, Weather.CLOUDY: 0.88, Weather.RAINY: 1.28},
    ),
    (
        KeywordRule("iron", ("Livogen",)),
        {Weather.HOT: 0.6, Weather.CLOUDY: 0.72, Weather.RAINY: 0.8},
    ),
    (
        KeywordRule("cough_syrup", ("Benadryl",)),
        {Weather.HOT: 0.36, Weather.CLOUDY: 0.6, Weather.RAINY: 1.68},
    ),
    (
        KeywordRule("dolo", ("Dolo",)),
        {Weather.HOT: 0.4, Weather.CLOUDY: 0.64, Weather.RAINY: 1.8},
    ),
    (
        KeywordRule("antihistamine", ("Cetirizine",)),
        {Weather.HOT: 0.56, Weather.CLOUDY: 0.76, Weather.RAINY: 1.12},
    ),
)

NEUTRAL_WEATHER: Mapping[Weather, float] = MappingProxyType({weather: 1.0 for weather in Weather})


def _first_match(rules: Iterable[KeywordRule], name: str, default: str) -> str:
    for rule in rules:
        if rule.matches(name):
            return rule.group
    return default


# ---------------------------------------------------------------------------
# Classifier


@dataclass(frozen=True)
class Classification:
    seasonal_group: str
    volume_tier: str
    stock_tier: str


def classify(name: str) -> Classification:
    """Return the seasonal group, volume tier and stock tier for ``name``."""

    name = name or ""
    return Classification(
        seasonal_group=_first_match(SEASONAL_RULES, name, "flat"),
        volume_tier=_first_match(VOLUME_RULES, name, "standard"),
        stock_tier=_first_match(STOCK_RULES, name, "default"),
    )


def seasonal_pattern(name: str) -> Tuple[float, ...]:
    """Return the 12 monthly demand factors (January first) for ``name``."""

    return SEASONAL_PATTERNS[classify(name).seasonal_group]


def base_multiplier(name: str) -> float:
    return VOLUME_MULTIPLIERS[classify(name).volume_tier]


def weather_sensitivity(name: str) -> Mapping[Weather, float]:
    for rule, factors in WEATHER_RULES:
        if rule.matches(name or ""):
            return factors
    return NEUTRAL_WEATHER


def weather_factor(weather: Weather | str, name: str) -> float:
    """Return the demand factor of ``weather`` for ``name`` (1.0 when unknown)."""

    try:
        condition = Weather(weather)
    except ValueError:
        LOGGER.debug("Unknown weather condition %r; using neutral factor", weather)
        return 1.0
    return float(weather_sensitivity(name).get(condition, 1.0))


_CATEGORY_INDEX: Dict[str, str] = {
    name: category for category, names in MEDICINE_CATEGORIES.items() for name in names
}


def category_for(name: str) -> str:
    return _CATEGORY_INDEX.get(name, DEFAULT_CATEGORY)


# ---------------------------------------------------------------------------
# Catalog entries


@dataclass(frozen=True)
class MedicineCatalogEntry:
    name: str
    category: str
    seasonal_group: str
    volume_tier: str
    seasonal_pattern: Tuple[float, ...]
    base_multiplier: float
    weather_sensitivity: Mapping[Weather, float]

    def to_info(self) -> MedicineInfo:
        return MedicineInfo(
            name=self.name,
            category=self.category,
            seasonal_group=self.seasonal_group,
            volume_tier=self.volume_tier,
            seasonal_pattern=list(self.seasonal_pattern),
            base_multiplier=self.base_multiplier,
            weather_sensitivity={weather.value: factor for weather, factor in self.weather_sensitivity.items()},
        )


def build_entry(name: str) -> MedicineCatalogEntry:
    classification = classify(name)
    return MedicineCatalogEntry(
        name=name,
        category=category_for(name),
        seasonal_group=classification.seasonal_group,
        volume_tier=classification.volume_tier,
        seasonal_pattern=SEASONAL_PATTERNS[classification.seasonal_group],
        base_multiplier=VOLUME_MULTIPLIERS[classification.volume_tier],
        weather_sensitivity=weather_sensitivity(name),
    )


class CatalogService:
    """Read-only access to the medicine catalogue."""

    def __init__(self, medicines: Optional[Sequence[str]] = None) -> None:
        names = list(medicines) if medicines is not None else list(DEFAULT_MEDICINES)
        self._entries: Dict[str, MedicineCatalogEntry] = {name: build_entry(name) for name in names}

    @property
    def medicines(self) -> List[str]:
        return list(self._entries)

    def categories(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for entry in self._entries.values():
            grouped.setdefault(entry.category, []).append(entry.name)
        return grouped

    def medicines_in(self, category: str) -> List[str]:
        return [entry.name for entry in self._entries.values() if entry.category == category]

    def has_medicine(self, name: str) -> bool:
        return name in self._entries

    def get_entry(self, name: str) -> MedicineCatalogEntry:
        """Return the catalogue entry, building a fallback entry for unknown names."""

        entry = self._entries.get(name)
        if entry is None:
            entry = build_entry(name)
        return entry
