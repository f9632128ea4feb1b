"""Popularity-ranked, paginated post listing.

Popularity is ``|upvoters| - |downvoters|``. It is computed inside the
aggregation pipeline on every query and never written back, so it cannot go
stale when votes change or posts are deleted.

Ordering is ``createdAt desc`` (optionally preceded by ``popularity desc``)
with ``_id desc`` as the final key. Posts sharing a timestamp therefore come
back in reverse insertion order, which keeps pages stable between calls.
"""

import re

from .database import object_id, serialize
from .errors import NotFound
from .pagination import page_params, total_pages

DEFAULT_FEED_LIMIT = 5

POPULARITY_STAGE = {
    "$addFields": {
        "popularity": {
            "$subtract": [
                {"$size": {"$ifNull": ["$upvoters", []]}},
                {"$size": {"$ifNull": ["$downvoters", []]}},
            ]
        }
    }
}


def tag_filter(tag):
    """Case-insensitive exact match against the post's tag"""
    if tag is None or not str(tag).strip():
        return {}
    return {"tag": {"$regex": f"^{re.escape(str(tag).strip())}$", "$options": "i"}}


def sort_stage(sort_by_popularity: bool) -> dict:
    if sort_by_popularity:
        return {"$sort": {"popularity": -1, "createdAt": -1, "_id": -1}}
    return {"$sort": {"createdAt": -1, "_id": -1}}


async def ranked_page(collection, match: dict, skip: int, limit: int, sort_by_popularity=False):
    """Run the filter -> popularity -> sort -> skip/limit pipeline"""
    pipeline = [
        {"$match": match},
        POPULARITY_STAGE,
        sort_stage(sort_by_popularity),
        {"$skip": skip},
        {"$limit": limit},
    ]
    docs = await collection.aggregate(pipeline).to_list(None)
    return [serialize(doc) for doc in docs]


class FeedRanker:
    def __init__(self, db):
        self.db = db

    async def list_posts(self, page=None, limit=None, tag=None, sort_by_popularity=False) -> dict:
        page, limit, skip = page_params(page, limit, DEFAULT_FEED_LIMIT)
        match = tag_filter(tag)

        posts = await ranked_page(self.db.posts, match, skip, limit, sort_by_popularity)
        # Total is scoped to the same filter as the page
        total = await self.db.posts.count_documents(match)

        return {
            "posts": posts,
            "total": total,
            "currentPage": page,
            "totalPages": total_pages(total, limit),
        }

    async def get_post(self, post_id: str) -> dict:
        """Single post with its computed popularity"""
        posts = await ranked_page(self.db.posts, {"_id": object_id(post_id, "post id")}, 0, 1)
        if not posts:
            raise NotFound("Post not found.")
        return posts[0]
