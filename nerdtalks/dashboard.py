from .database import object_id, serialize
from .feed import ranked_page
from .pagination import page_params, total_pages

DEFAULT_DASHBOARD_LIMIT = 10


class DashboardQueries:
    """Read-only per-author and per-post listings for owner and admin views"""

    def __init__(self, db):
        self.db = db

    async def posts_by_author(self, author_id: str, page=None, limit=None) -> dict:
        page, limit, skip = page_params(page, limit, DEFAULT_DASHBOARD_LIMIT)
        match = {"authorId": author_id}

        posts = await ranked_page(self.db.posts, match, skip, limit)
        total_posts = await self.db.posts.count_documents(match)
        pages = total_pages(total_posts, limit)

        return {
            "posts": posts,
            "totalPosts": total_posts,
            "currentPage": page,
            "totalPages": pages,
            "hasNextPage": page < pages,
            "hasPrevPage": page > 1,
        }

    async def comments_by_post(self, post_id: str, page=None, limit=None) -> dict:
        page, limit, skip = page_params(page, limit, DEFAULT_DASHBOARD_LIMIT)
        match = {"postId": str(object_id(post_id, "post id"))}

        cursor = self.db.comments.find(match).sort([("createdAt", -1), ("_id", -1)]).skip(skip).limit(limit)
        comments = [serialize(c) for c in await cursor.to_list(None)]
        total_count = await self.db.comments.count_documents(match)

        return {
            "comments": comments,
            "totalCount": total_count,
            "currentPage": page,
            "totalPages": total_pages(total_count, limit),
        }
