"""
同步流水线最后一步写入的示例数据（奖项、评论、片单）。

所有记录使用固定 id，随机部分由调用方传入的 random.Random 决定，
同样的种子与输入会得到完全相同的行，重复同步是幂等的。
"""
import random
from typing import Any, Dict, List, Sequence

SAMPLE_AWARDS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Academy Award for Best Picture",
        "category": "Best Picture",
        "year": 2023,
        "winner": True,
    },
    {
        "id": 2,
        "name": "Golden Globe Award for Best Motion Picture",
        "category": "Best Motion Picture - Drama",
        "year": 2023,
        "winner": True,
    },
    {
        "id": 3,
        "name": "Emmy Award for Outstanding Drama Series",
        "category": "Outstanding Drama Series",
        "year": 2023,
        "winner": True,
    },
    {
        "id": 4,
        "name": "BAFTA Award for Best Film",
        "category": "Best Film",
        "year": 2023,
        "winner": True,
    },
    {
        "id": 5,
        "name": "Screen Actors Guild Award",
        "category": "Outstanding Performance by a Cast",
        "year": 2023,
        "winner": False,
    },
]

REVIEW_TEXTS = (
    "Amazing cinematography and stellar performances!",
    "A masterpiece that will be remembered for years to come.",
    "Great storyline but could have been shorter.",
    "Excellent character development and plot twists.",
    "Visually stunning with incredible special effects.",
    "A bit slow-paced but worth watching.",
    "Outstanding acting and direction.",
    "One of the best films/shows I've ever seen!",
    "Good entertainment value for the whole family.",
    "Compelling narrative with emotional depth.",
)

REVIEWED_MOVIES = 5
REVIEWED_TV_SHOWS = 3


def build_awards() -> List[Dict[str, Any]]:
    return [
        {**award, "movie_id": None, "tv_show_id": None, "person_id": None}
        for award in SAMPLE_AWARDS
    ]


def build_reviews(
    movie_ids: Sequence[int],
    tv_show_ids: Sequence[int],
    user_ids: Sequence[int],
    rng: random.Random,
) -> List[Dict[str, Any]]:
    reviews: List[Dict[str, Any]] = []
    targets = [("movie_id", mid) for mid in movie_ids[:REVIEWED_MOVIES]]
    targets += [("tv_show_id", tid) for tid in tv_show_ids[:REVIEWED_TV_SHOWS]]
    for field, content_id in targets:
        for user_id in user_ids:
            reviews.append({
                "id": len(reviews) + 1,
                "user_id": user_id,
                "movie_id": content_id if field == "movie_id" else None,
                "tv_show_id": content_id if field == "tv_show_id" else None,
                "rating": rng.randint(1, 5),
                "review_text": rng.choice(REVIEW_TEXTS),
            })
    return reviews


def build_watchlist(
    movie_ids: Sequence[int],
    tv_show_ids: Sequence[int],
    user_ids: Sequence[int],
    rng: random.Random,
) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    for user_id in user_ids:
        # 每个用户 3-10 部电影、2-6 部剧集
        for movie_id in movie_ids[:rng.randint(3, 10)]:
            entries.append({
                "id": len(entries) + 1,
                "user_id": user_id,
                "movie_id": movie_id,
                "tv_show_id": None,
            })
        for tv_show_id in tv_show_ids[:rng.randint(2, 6)]:
            entries.append({
                "id": len(entries) + 1,
                "user_id": user_id,
                "movie_id": None,
                "tv_show_id": tv_show_id,
            })
    return entries
