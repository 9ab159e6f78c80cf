"""Word pools and word-sequence generation.

Free-play modes sample from a mixed pool. Survival escalates through
difficulty tiers by level. The daily challenge is fully determined by its
date so every player gets the same words on the same day.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date as date_type

WORD_POOLS: dict[str, tuple[str, ...]] = {
    "easy": (
        "cat", "dog", "sun", "run", "hat", "ball", "tree", "fish", "bird", "moon",
        "star", "book", "hand", "food", "love", "time", "home", "play", "jump", "sing",
        "blue", "pink", "help", "read", "write", "walk", "talk", "door", "wall", "rose",
        "snow", "rain", "wind", "fire", "water", "earth", "leaf", "seed", "rock", "wave",
        "sand", "lake", "hill", "road", "path", "gate", "desk", "lamp", "sock", "shoe",
        "cup", "bed", "car", "bus", "toy", "pen", "bag", "box", "key", "note",
        "bug", "ant", "cow", "pig", "goat", "frog", "duck", "owl", "bee", "hen",
        "boy", "girl", "kid", "baby", "mom", "dad", "aunt", "uncle", "gran", "friend",
        "soft", "hard", "warm", "cold", "dry", "wet", "fast", "slow", "loud", "quiet",
        "park", "farm", "yard", "shop", "city", "town", "room", "hall", "kitchen", "garden",
        "cake", "rice", "meat", "milk", "tea", "juice", "fruit", "plant", "corn", "beans",
        "chair", "table", "board", "clock", "phone", "mouse", "cable", "paper", "card", "sharpener",
        "green", "red", "white", "black", "yellow", "purple", "brown", "silver", "gold", "orange",
        "face", "nose", "ear", "eye", "foot", "hair", "arm", "leg", "chin", "neck",
        "jump", "run", "kick", "sit", "stand", "crawl", "move", "turn", "clap", "shake",
        "toycar", "teddy", "balloon", "rocket", "puzzle", "blocks", "rattle", "drum", "truck", "plane",
        "cookie", "bread", "toast", "soup", "soda", "chips", "pizza", "pasta", "burger", "candy",
        "bowl", "plate", "fork", "spoon", "knife", "pan", "pot", "stove", "sink", "mirror",
        "river", "pond", "shore", "beach", "field", "trail", "forest", "woods", "bridge", "stone",
        "cloud", "storm", "fog", "mist", "shine", "heat", "chill", "freeze", "breeze", "flame",
        "month", "week", "day", "night", "hour", "minute", "second", "today", "yesterday", "tomorrow",
        "game", "win", "lose", "score", "level", "point", "goal", "team", "match", "playground",
        "doll", "rope", "swing", "slide", "sandbox", "pump", "button", "string", "tape", "glue",
        "cabin", "tent", "camp", "firewood", "marshmallow", "picnic", "blanket", "pillow", "basket", "snack",
        "birdsong", "sunlight", "shadow", "footstep", "raindrop", "snowflake", "pebble", "twig", "branch", "breeze",
        "cereal", "cheese", "butter", "jam", "honey", "yogurt", "salad", "smoothie", "cookie", "cracker",
        "train", "track", "station", "ticket", "signal", "bridge", "tunnel", "engine", "whistle", "bell",
        "kitten", "puppy", "pony", "calf", "cub", "foal", "chick", "fawn", "bunny", "hamster",
        "pencil", "eraser", "marker", "crayon", "ink", "folder", "notebook", "stapler", "ruler", "brush",
        "grain", "bread", "sugar", "salt", "pepper", "spice", "oil", "flour", "yeast", "dough",
        "riverbank", "treehouse", "playset", "storybook", "sidewalk", "crossing", "fence", "gatehouse", "mailbox", "porch",
        "peach", "grape", "melon", "berry", "plum", "pear", "lime", "fig", "nut", "seedling",
        "plants", "soil", "cliff", "shoreline", "canyon", "meadow", "orchard", "grove", "vine", "bud",
        "lightbulb", "switch", "charger", "speaker", "screen", "remote", "router", "tablet", "cable", "battery"
    ),
    "medium": (
        "apple", "house", "river", "cloud", "table", "chair", "smile", "happy", "green", "bread",
        "music", "dance", "light", "sound", "round", "plant", "tiger", "horse", "beach", "ocean",
        "mountain", "forest", "garden", "bridge", "window", "pocket", "basket", "bottle", "button", "carpet",
        "castle", "cheese", "cherry", "cookie", "cotton", "dragon", "circle", "square", "flower", "finger",
        "gloves", "hammer", "island", "jungle", "kettle", "ladder", "lemon", "marble", "needle", "orange",
        "planet", "rocket", "energy", "pencil", "camera", "memory", "basketball", "kitchen", "picture", "people",
        "planet", "shadow", "animal", "thunder", "blanket", "shelter", "signal", "whistle", "compass", "lantern",
        "branch", "season", "harvest", "canyon", "valley", "desert", "cactus", "feather", "advice", "journey",
        "copper", "silver", "garden", "breeze", "motion", "travel", "leather", "castle", "anchor", "ticket",
        "library", "museum", "harbor", "market", "festival", "village", "station", "airport", "harvest", "lantern",
        "fabric", "cotton", "velvet", "thread", "canvas", "helmet", "pillow", "blanket", "bucket", "carrier",
        "marvel", "wonder", "legend", "memory", "chapter", "event", "moment", "reason", "effort", "victory",
        "continent", "country", "border", "island", "harbor", "vessel", "compass", "anchor", "voyage", "captain",
        "branch", "leaflet", "sapling", "orchard", "pasture", "grove", "breeze", "thicket", "meadow", "pathway",
        "dolphin", "parrot", "giraffe", "gazelle", "panther", "falcon", "beetle", "python", "lioness", "stallion",
        "raindrop", "sunbeam", "moonlight", "thunder", "twilight", "sunrise", "sunset", "rainfall", "snowstorm", "hailstone",
        "crystal", "mineral", "granite", "marble", "copper", "carbon", "sulfur", "quartz", "opal", "topaz",
        "engineer", "artist", "builder", "driver", "teacher", "student", "sailor", "pilot", "farmer", "miner",
        "harp", "violin", "guitar", "trumpet", "drummer", "cellist", "singer", "pianist", "flutist", "composer",
        "harvest", "winter", "summer", "autumn", "spring", "evening", "morning", "midday", "midnight", "holiday",
        "circuit", "battery", "sensor", "module", "wireless", "network", "signal", "adapter", "voltage", "current",
        "tunnel", "station", "railway", "platform", "terminal", "ticketing", "conductor", "passenger", "engine", "carriage",
        "pepper", "vinegar", "tomato", "onion", "cabbage", "spinach", "ginger", "garlic", "mustard", "saffron",
        "notebook", "stapler", "marker", "highlighter", "folder", "binder", "journal", "calendar", "clipboard", "printer"
    ),
    "hard": (
        "adventure", "brilliant", "challenge", "dangerous", "elephant", "fantastic", "geography", "hurricane", "important", "jubilant",
        "knowledge", "landscape", "mysterious", "necessary", "octopus", "parliament", "question", "rainbow", "skeleton", "telescope",
        "umbrella", "velocity", "wonderful", "xylophone", "yesterday", "zeppelin", "beautiful", "butterfly", "crocodile", "dinosaur",
        "education", "flamingo", "giraffe", "helicopter", "incredible", "jellyfish", "kangaroo", "lightning", "magician", "nighttime",
        "orchestra", "penguin", "qualified", "raspberry", "spaceship", "trampoline", "universe", "valentine", "waterfall", "youngster",
        "algorithm", "boundary", "calendar", "ceremony", "citizenship", "conclusion", "container", "conversion", "creature", "decision",
        "delivery", "electricity", "exception", "fantasy", "gallery", "hardware", "identity", "judgment", "keyboard", "language",
        "landlord", "landmark", "manuscript", "mechanism", "movement", "molecule", "momentum", "mountainous", "narrative", "oxygen",
        "particle", "passenger", "pharmacy", "platform", "population", "position", "resource", "response", "security", "software",
        "solution", "strategy", "symbolic", "tactical", "terminal", "tournament", "treasure", "variable", "villager", "visibility",
        "volunteer", "warehouse", "workshop", "zookeeper", "artistic", "biologist", "chemist", "designer", "engineer", "explosion",
        "framework", "governor", "headline", "historic", "industry", "invasion", "landslide", "laughter", "marathon", "maturity",
        "migration", "military", "minister", "monument", "mystical", "northern", "operator", "painting", "personal", "powerful",
        "proposal", "reaction", "recovery", "research", "seasonal", "standard", "structure", "survivor", "tourism", "training",
        "transport", "tropical", "vacation", "warrior", "wildlife", "windstorm", "airplane", "astronaut", "avalanche", "bacterial",
        "beneath", "boundary", "division", "eclipse", "ecosystem", "elasticity", "enormous", "foundation", "glorious", "heritage",
        "honestly", "improper", "jasmine", "landfill", "lifeboat", "migration", "notebook", "password", "pipeline", "precious"
    ),
    "expert": (
        "accomplishment", "bibliography", "circumstance", "documentary", "entrepreneur", "fluorescent", "governmental", "headquarters", "imaginative", "jurisdiction",
        "kaleidoscope", "legislative", "metropolitan", "neighborhood", "optimization", "philosophical", "questionnaire", "revolutionary", "sophisticated", "temperature",
        "undergraduate", "vulnerability", "whatsoever", "extraordinary", "zoological", "achievement", "breakthrough", "characteristic", "determination", "fundamentally",
        "guaranteeing", "humanitarian", "incomprehensible", "jeopardizing", "knowledgeable", "luxuriously", "manufacturing", "nevertheless", "opportunities", "parliamentary",
        "quantitative", "relationship", "supplementary", "traditionally", "understanding", "visualization", "wholehearted", "zealousness", "accelerated", "bioengineering",
        "collaboration", "cryptocurrency", "cybersecurity", "decentralized", "differentiation", "disproportionate", "electromagnetic", "environmental", "experimental", "geoengineering",
        "globalization", "hypersensitive", "illustration", "implementation", "institutional", "intellectual", "interpretation", "jurisdictional", "legalization", "multiplication",
        "nanomaterials", "neurological", "optimization", "pharmaceutical", "physiological", "planetarium", "precipitation", "psychological", "recommendation", "registration",
        "regulation", "reinforcement", "relativistic", "representative", "sensational", "specialization", "synchronization", "telecommunication", "transformation", "ultrasonic",
        "verification", "vocalization", "vulnerable", "artificially", "biochemical", "chronological", "computational", "concentration", "confrontation", "connectivity",
        "consciousness", "constructive", "contamination", "controversial", "coordination", "corresponding", "dramatically", "effectiveness", "extraordinary", "fabrication",
        "formulation", "heterogeneous", "holographic", "infrastructure", "institutionalized", "interdependent", "interdisciplinary", "microscopic", "multidimensional", "overwhelming",
        "paradoxically", "perpendicular", "philosophical", "photosynthesis", "proportionality", "rehabilitation", "revolutionizing", "simultaneous", "sustainability", "thermodynamic"
    ),
}

DIFFICULTIES = ("easy", "medium", "hard", "expert")
MIXED = "mixed"

# Parameters of the linear congruential generator behind the daily challenge.
_LCG_MULTIPLIER = 9301
_LCG_INCREMENT = 49297
_LCG_MODULUS = 233280


def hash_string(text: str) -> int:
    """31-multiplier string hash over UTF-16 code units, wrapped to int32.

    Returns the absolute value so it can seed the generator directly.
    """
    value = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        value = (value * 31 + code) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


class SeededRandom:
    """Deterministic ``[0, 1)`` sequence derived from an integer seed."""

    def __init__(self, seed: int) -> None:
        self._value = seed

    def __call__(self) -> float:
        self._value = (self._value * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return self._value / _LCG_MODULUS


def seeded_shuffle(items: list[str], rand: SeededRandom) -> list[str]:
    """Fisher-Yates shuffle in place, driven by ``rand``."""
    for i in range(len(items) - 1, 0, -1):
        j = int(rand() * (i + 1))
        items[i], items[j] = items[j], items[i]
    return items


@dataclass(frozen=True)
class DailyChallenge:
    """The challenge parameters shared by every player on ``date``."""

    date: str
    word_count: int
    time_limit: int
    difficulty: str
    words: tuple[str, ...]
    hash: int


def survival_difficulty(level: int) -> str:
    if level <= 3:
        return "easy"
    if level <= 6:
        return "medium"
    if level <= 9:
        return "hard"
    return "expert"


def survival_word_count(level: int) -> int:
    return min(5 + level, 15)


def word_pool(difficulty: str) -> tuple[str, ...]:
    """Return the pool for ``difficulty``; ``mixed`` is easy+medium+hard."""
    if difficulty == MIXED:
        return WORD_POOLS["easy"] + WORD_POOLS["medium"] + WORD_POOLS["hard"]
    return WORD_POOLS.get(difficulty, WORD_POOLS["easy"])


class WordGenerator:
    """Produces word sequences for a session.

    Args:
        rng: Source of randomness for free-play sampling. Inject a seeded
            ``random.Random`` for reproducible sequences.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.survival_level = 0

    def generate_words(self, count: int, difficulty: str = MIXED) -> list[str]:
        pool = word_pool(difficulty)
        if count > len(pool):
            everything = [word for words in WORD_POOLS.values() for word in words]
            return self._rng.sample(everything, min(count, len(everything)))
        return self._rng.sample(pool, count)

    def generate_survival_words(self, level: int) -> list[str]:
        self.survival_level = level
        return self.generate_words(survival_word_count(level), survival_difficulty(level))

    def generate_daily_challenge(self, day: str | date_type) -> DailyChallenge:
        """Build the deterministic challenge for ``day`` (``YYYY-MM-DD``)."""
        day_key = day.isoformat() if isinstance(day, date_type) else str(day)
        seed = hash_string(day_key)
        rand = SeededRandom(seed)

        word_count = 20 + int(rand() * 31)
        time_limit = 60 + int(rand() * 121)
        difficulty = DIFFICULTIES[int(rand() * 4)]

        pool = list(word_pool(difficulty))
        shuffled = seeded_shuffle(pool, SeededRandom(seed))
        words = tuple(shuffled[: min(word_count, len(shuffled))])

        return DailyChallenge(
            date=day_key,
            word_count=word_count,
            time_limit=time_limit,
            difficulty=difficulty,
            words=words,
            hash=hash_string(f"{day_key}{word_count}{time_limit}"),
        )
