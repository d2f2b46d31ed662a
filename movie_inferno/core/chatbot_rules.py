"""
聊天推荐的意图识别规则。

关键词按子串匹配（"movies" 命中 "movie"，"award" 也会命中 "war"），
类型按下表顺序输出。
"""
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

MOVIE_KEYWORDS = ("movie", "film")
TV_KEYWORDS = ("tv", "show", "series")

GENRE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Action", ("action", "adventure", "thriller", "fight", "battle", "war")),
    ("Comedy", ("comedy", "funny", "humor", "laugh", "hilarious", "comic")),
    ("Drama", ("drama", "dramatic", "emotional", "serious")),
    ("Horror", ("horror", "scary", "fear", "frightening", "terrifying", "spooky")),
    ("Romance", ("romance", "romantic", "love", "relationship", "dating")),
    ("Science Fiction", ("sci-fi", "science fiction", "scifi", "space", "future", "alien")),
    ("Fantasy", ("fantasy", "magic", "magical", "wizard", "supernatural")),
    ("Crime", ("crime", "criminal", "detective", "police", "murder", "investigation")),
    ("Documentary", ("documentary", "doc", "real", "factual")),
    ("Animation", ("animation", "animated", "cartoon", "anime")),
    ("Thriller", ("thriller", "suspense", "tension", "mystery")),
    ("Adventure", ("adventure", "journey", "quest", "exploration")),
    ("Family", ("family", "kids", "children", "wholesome")),
    ("Western", ("western", "cowboy", "wild west")),
    ("War", ("war", "military", "soldier", "battle")),
    ("Music", ("music", "musical", "song", "band")),
    ("History", ("history", "historical", "period", "past")),
)

# 类型关联查不到结果时，用标题/简介做关键词过滤
FALLBACK_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "Action": ("action", "fight", "battle", "war", "adventure"),
    "Comedy": ("comedy", "funny", "humor", "laugh"),
    "Drama": ("drama", "dramatic", "emotional"),
    "Horror": ("horror", "scary", "fear", "frightening"),
    "Romance": ("romance", "romantic", "love"),
    "Science Fiction": ("sci-fi", "science", "space", "future"),
    "Fantasy": ("fantasy", "magic", "magical"),
    "Crime": ("crime", "criminal", "detective", "police"),
    "Thriller": ("thriller", "suspense", "mystery"),
}

MOVIES_ONLY = "movies"
TV_ONLY = "tv"
MIXED = "mixed"


@dataclass
class Intent:
    wants_movies: bool = False
    wants_tv: bool = False
    genres: List[str] = field(default_factory=list)

    @property
    def scope(self) -> str:
        if self.wants_movies and not self.wants_tv:
            return MOVIES_ONLY
        if self.wants_tv and not self.wants_movies:
            return TV_ONLY
        return MIXED


def contains_keyword(text: str, keyword: str) -> bool:
    return keyword in text


def contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(contains_keyword(text, kw) for kw in keywords)


def detect_intent(message: str) -> Intent:
    text = (message or "").lower()
    return Intent(
        wants_movies=contains_any(text, MOVIE_KEYWORDS),
        wants_tv=contains_any(text, TV_KEYWORDS),
        genres=[genre for genre, keywords in GENRE_KEYWORDS if contains_any(text, keywords)],
    )


def fallback_keywords(genres: Sequence[str]) -> List[str]:
    keywords: List[str] = []
    for genre in genres:
        keywords.extend(FALLBACK_KEYWORDS.get(genre, (genre.lower(),)))
    return keywords


def response_text(intent: Intent) -> str:
    names = ", ".join(intent.genres)
    scope = intent.scope
    if scope == MOVIES_ONLY:
        if intent.genres:
            return f"Here are some great {names} movies I found for you:"
        return "Here are some popular movies I recommend:"
    if scope == TV_ONLY:
        if intent.genres:
            return f"Here are some excellent {names} TV shows for you:"
        return "Here are some popular TV shows I recommend:"
    if intent.genres:
        return f"Here are some great {names} recommendations:"
    return "Here are some popular recommendations for you:"


NO_RESULTS_TEXT = (
    "I couldn't find any specific recommendations for that request. Try asking for movies "
    "or TV shows by genre like 'action movies' or 'comedy shows'."
)
