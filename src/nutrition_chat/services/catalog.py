"""Static food knowledge: curated nutrition records and the fallback lexicon."""

from dataclasses import dataclass, field

from nutrition_chat.domain.nutrition import (
    MacroProfile,
    NutritionRecord,
    Portion,
    RecordOrigin,
)


@dataclass(frozen=True)
class LexiconEntry:
    """Food term recognised by the rule-based extractor.

    ``forms`` are lowercase surface forms matched on word boundaries. When
    ``inflects`` is set the forms may carry a German plural or genitive
    suffix (``s``, ``en``, ``n``). ``estimate`` is the macro estimate for one
    ``portion_hint`` sized unit.
    """

    name: str
    forms: tuple[str, ...]
    portion_hint: str
    estimate: MacroProfile
    inflects: bool = True


@dataclass(frozen=True)
class Catalog:
    """Curated records consulted before any remote lookup."""

    records: tuple[NutritionRecord, ...] = field(default_factory=tuple)

    def find(self, name: str) -> NutritionRecord | None:
        """Return the record whose name or alias equals ``name``."""
        needle = name.strip().lower()
        for record in self.records:
            if record.name.lower() == needle or needle in record.aliases:
                return record
        return None


def _record(  # noqa: PLR0913
    record_id: str,
    name: str,
    category: str,
    macros: tuple[float, float, float, float],
    portions: tuple[tuple[str, float], ...],
    aliases: tuple[str, ...],
    *,
    fiber: float | None = None,
    sugar: float | None = None,
    sodium: float | None = None,
) -> NutritionRecord:
    calories, protein, carbs, fat = macros
    return NutritionRecord(
        id=record_id,
        name=name,
        category=category,
        per_100g=MacroProfile(
            calories=calories,
            protein_g=protein,
            carbs_g=carbs,
            fat_g=fat,
            fiber_g=fiber,
            sugar_g=sugar,
            sodium_mg=sodium,
        ),
        common_portions=tuple(Portion(label, grams) for label, grams in portions),
        aliases=frozenset(aliases),
        origin=RecordOrigin.SYSTEM_CURATED,
    )


SYSTEM_FOODS: tuple[NutritionRecord, ...] = (
    _record(
        "apple-001",
        "Apfel",
        "fruit",
        (52, 0.3, 14, 0.2),
        (
            ("1 mittelgroßer Apfel", 180),
            ("1 kleiner Apfel", 120),
            ("1 großer Apfel", 240),
        ),
        ("apple", "äpfel"),
        fiber=2.4,
        sugar=10.4,
    ),
    _record(
        "banana-001",
        "Banane",
        "fruit",
        (89, 1.1, 23, 0.3),
        (
            ("1 mittelgroße Banane", 120),
            ("1 kleine Banane", 90),
            ("1 große Banane", 150),
        ),
        ("banana", "bananen"),
        fiber=2.6,
        sugar=12.2,
    ),
    _record(
        "bread-white-001",
        "Weißbrot",
        "grain",
        (265, 9, 49, 3.2),
        (("1 Scheibe", 25), ("1 dicke Scheibe", 35), ("1 Brötchen", 60)),
        ("brot", "bread", "weissbrot", "white bread", "brötchen"),
        fiber=2.7,
    ),
    _record(
        "chicken-breast-001",
        "Hähnchenbrust",
        "meat",
        (165, 31, 0, 3.6),
        (
            ("1 mittelgroße Hähnchenbrust", 180),
            ("1 kleine Hähnchenbrust", 120),
            ("1 große Hähnchenbrust", 250),
        ),
        ("chicken", "hähnchen", "huhn", "hühnerbrust"),
    ),
    _record(
        "rice-cooked-001",
        "Reis (gekocht)",
        "grain",
        (130, 2.7, 28, 0.3),
        (("1 Portion", 150), ("1 kleine Portion", 100), ("1 große Portion", 200)),
        ("reis", "rice", "basmati", "jasmin reis"),
        fiber=0.4,
    ),
    _record(
        "pasta-cooked-001",
        "Nudeln (gekocht)",
        "grain",
        (131, 5, 25, 1.1),
        (("1 Portion", 150), ("1 kleine Portion", 100), ("1 große Portion", 200)),
        ("nudeln", "pasta", "spaghetti", "penne", "fusilli"),
        fiber=1.8,
    ),
    _record(
        "egg-001",
        "Ei",
        "other",
        (155, 13, 1.1, 11),
        (
            ("1 mittelgroßes Ei", 55),
            ("1 kleines Ei", 45),
            ("1 großes Ei", 65),
        ),
        ("egg", "eier"),
        sodium=124,
    ),
    _record(
        "milk-001",
        "Milch (3,5% Fett)",
        "dairy",
        (64, 3.4, 4.8, 3.6),
        (("1 Glas (200ml)", 200), ("1 Tasse (250ml)", 250), ("1 Liter", 1000)),
        ("milch", "milk", "vollmilch"),
        sugar=4.8,
    ),
    _record(
        "cheese-gouda-001",
        "Gouda Käse",
        "dairy",
        (356, 25, 2.2, 27),
        (("1 Scheibe", 25), ("1 dünne Scheibe", 15), ("1 dicke Scheibe", 35)),
        ("käse", "cheese", "gouda"),
        sodium=819,
    ),
    _record(
        "potato-001",
        "Kartoffel (gekocht)",
        "vegetable",
        (77, 2, 17, 0.1),
        (
            ("1 mittelgroße Kartoffel", 120),
            ("1 kleine Kartoffel", 80),
            ("1 große Kartoffel", 180),
        ),
        ("kartoffel", "kartoffeln", "potato", "erdapfel"),
        fiber=2.2,
    ),
)

SYSTEM_CATALOG = Catalog(SYSTEM_FOODS)


def _entry(  # noqa: PLR0913
    name: str,
    calories: float,
    protein: float,
    carbs: float,
    fat: float,
    portion: str,
    *forms: str,
    inflects: bool = True,
) -> LexiconEntry:
    return LexiconEntry(
        name=name,
        forms=forms or (name.lower(),),
        portion_hint=portion,
        estimate=MacroProfile(
            calories=calories, protein_g=protein, carbs_g=carbs, fat_g=fat
        ),
        inflects=inflects,
    )


FOOD_LEXICON: tuple[LexiconEntry, ...] = (
    _entry("Apfel", 52, 0.3, 14, 0.2, "1 mittelgroßer", "apfel", "äpfel"),
    _entry("Banane", 89, 1.1, 23, 0.3, "1 mittelgroße"),
    _entry("Butterbrot", 250, 8, 35, 8, "1 Scheibe", "butterbrot", "butterbrote"),
    _entry("Müsli", 350, 12, 60, 8, "1 Schüssel", "müsli", "muesli"),
    _entry("Joghurt", 150, 10, 12, 8, "1 Becher", "joghurt", "jogurt"),
    _entry("Ei", 70, 6, 0.5, 5, "1 Stück", "ei", "eier", "eiern", inflects=False),
    _entry("Brot", 200, 6, 40, 2, "2 Scheiben", "brot", "brote"),
    _entry("Käse", 100, 8, 1, 8, "30g", inflects=False),
    _entry("Salat", 50, 2, 8, 1, "1 Portion", "salat", "salate"),
    _entry("Pasta", 350, 12, 70, 2, "1 Portion"),
    _entry("Reis", 300, 6, 65, 1, "1 Portion", inflects=False),
    _entry("Hähnchen", 200, 30, 0, 8, "150g", "hähnchen", "hühnchen", "huhn"),
    _entry("Pizza", 800, 30, 90, 35, "1 Pizza", "pizza", "pizzen"),
    _entry("Schokolade", 150, 2, 16, 9, "30g"),
    _entry("Schnitzel", 300, 25, 15, 18, "1 Stück"),
    _entry("Pommes", 365, 4, 63, 17, "1 Portion", inflects=False),
    _entry("Tortellini", 250, 10, 45, 5, "1 Portion", inflects=False),
    _entry(
        "Käsesoße", 180, 8, 6, 15, "100ml", "käsesoße", "käsesosse", inflects=False
    ),
    _entry("Nudeln", 350, 12, 70, 2, "1 Portion", "nudel", "nudeln"),
    _entry("Spaghetti", 350, 12, 70, 2, "1 Portion", inflects=False),
    _entry("Fleisch", 250, 26, 0, 15, "100g"),
    _entry("Gemüse", 25, 2, 5, 0.2, "100g", inflects=False),
    _entry("Kartoffeln", 77, 2, 17, 0.1, "100g", "kartoffel", "kartoffeln"),
    _entry("Fisch", 200, 22, 0, 12, "100g"),
    _entry("Lachs", 208, 25, 0, 12, "100g"),
    _entry("Thunfisch", 144, 30, 0, 1, "100g"),
    _entry("Quinoa", 368, 14, 64, 6, "100g", inflects=False),
    _entry("Avocado", 160, 2, 9, 15, "1 Stück"),
    _entry(
        "Nüsse", 600, 15, 16, 54, "100g", "nüsse", "nuss", "nüssen", inflects=False
    ),
    _entry("Mandeln", 579, 21, 22, 50, "100g", "mandel", "mandeln"),
    _entry("Haferflocken", 389, 17, 66, 7, "100g", inflects=False),
    _entry("Milch", 42, 3.4, 5, 1, "100ml", inflects=False),
    _entry("Butter", 717, 1, 1, 81, "100g", inflects=False),
    _entry("Olivenöl", 884, 0, 0, 100, "100ml", inflects=False),
    _entry("Tomaten", 18, 0.9, 3.9, 0.2, "100g", "tomate", "tomaten"),
    _entry("Gurke", 16, 0.7, 3.6, 0.1, "100g"),
    _entry("Paprika", 31, 1, 6, 0.3, "100g"),
    _entry("Zwiebeln", 40, 1.1, 9.3, 0.1, "100g", "zwiebel", "zwiebeln"),
    _entry("Knoblauch", 149, 6.4, 33, 0.5, "100g"),
    _entry("Spinat", 23, 2.9, 3.6, 0.4, "100g"),
    _entry("Brokkoli", 34, 2.8, 7, 0.4, "100g", "brokkoli", "broccoli"),
    _entry("Karotten", 41, 0.9, 10, 0.2, "100g", "karotte", "karotten"),
    _entry(
        "Süßkartoffeln", 86, 1.6, 20, 0.1, "100g", "süßkartoffel", "süßkartoffeln"
    ),
    _entry("Kaffee", 2, 0.1, 0, 0, "1 Tasse"),
    _entry("Tee", 1, 0, 0, 0, "1 Tasse"),
    _entry("Orange", 47, 0.9, 12, 0.1, "1 mittelgroße"),
    _entry("Birne", 57, 0.4, 15, 0.1, "1 mittelgroße"),
    _entry("Erdbeeren", 32, 0.7, 8, 0.3, "100g", "erdbeere", "erdbeeren"),
    _entry("Weintrauben", 69, 0.7, 16, 0.2, "100g", "weintraube", "weintrauben"),
    _entry("Kiwi", 61, 1.1, 15, 0.5, "1 Stück"),
    _entry("Mango", 60, 0.8, 15, 0.4, "100g"),
    _entry("Ananas", 50, 0.5, 13, 0.1, "100g", inflects=False),
    _entry("Wassermelone", 30, 0.6, 8, 0.2, "100g"),
    _entry("Melone", 34, 0.8, 8, 0.2, "100g"),
    _entry("Pfirsich", 39, 0.9, 10, 0.3, "1 mittelgroßer", "pfirsich", "pfirsiche"),
    _entry("Pflaume", 46, 0.7, 11, 0.3, "1 Stück"),
    _entry("Kirschen", 63, 1, 16, 0.2, "100g", "kirsche", "kirschen"),
    _entry("Himbeeren", 52, 1.2, 12, 0.7, "100g", "himbeere", "himbeeren"),
    _entry("Blaubeeren", 57, 0.7, 14, 0.3, "100g", "blaubeere", "blaubeeren"),
    _entry("Heidelbeeren", 57, 0.7, 14, 0.3, "100g", "heidelbeere", "heidelbeeren"),
    _entry("Beeren", 57, 1.4, 12, 0.3, "100g", "beere", "beeren"),
)
