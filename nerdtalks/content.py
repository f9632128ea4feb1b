"""Single-document CRUD around the engagement core: posts, comments, tags,
announcements."""

import logging

import pymongo.errors

from .database import object_id, serialize, utcnow
from .errors import Conflict, Forbidden, InvalidArgument, NotFound

logger = logging.getLogger(__name__)


class ContentService:
    def __init__(self, db, clock=utcnow):
        self.db = db
        self.clock = clock

    async def _author_fields(self, claim) -> dict:
        """Denormalized author display fields, from the stored user when there is one"""
        user = await self.db.users.find_one({"uid": claim.uid}) or {}
        return {
            "authorId": claim.uid,
            "authorName": user.get("name") or claim.name or "",
            "authorEmail": user.get("email") or claim.email or "",
            "authorAvatar": user.get("avatar", ""),
        }

    ##########
    # Posts
    ##########
    async def create_post(self, claim, title: str, content: str, tag: str) -> dict:
        post_doc = {
            "title": title,
            "content": content,
            "tag": tag,
            **await self._author_fields(claim),
            "upvoters": [],
            "downvoters": [],
            "createdAt": self.clock(),
        }
        result = await self.db.posts.insert_one(post_doc)
        logger.info("User %s created post %s", claim.uid, result.inserted_id)
        return {"message": "Post created successfully.", "postId": str(result.inserted_id)}

    async def delete_post(self, post_id: str, claim, is_admin: bool) -> dict:
        """Delete a post and its comments; owner or admin only"""
        _id = object_id(post_id, "post id")
        post = await self.db.posts.find_one({"_id": _id}, {"authorId": 1})
        if not post:
            raise NotFound("Post not found.")
        if post.get("authorId") != claim.uid and not is_admin:
            raise Forbidden("Forbidden access: not the post owner.")

        await self.db.posts.delete_one({"_id": _id})
        # Delete comments related to post
        removed = await self.db.comments.delete_many({"postId": str(_id)})

        logger.info("Post %s deleted with %d comments", post_id, removed.deleted_count)
        return {"message": "Post deleted successfully."}

    ##########
    # Comments
    ##########
    async def create_comment(self, claim, post_id: str, content: str) -> dict:
        _id = object_id(post_id, "post id")
        if not await self.db.posts.find_one({"_id": _id}, {"_id": 1}):
            raise NotFound("Post not found.")

        now = self.clock()
        comment_doc = {
            "postId": str(_id),
            **await self._author_fields(claim),
            "content": content,
            "upvoters": [],
            "downvoters": [],
            "createdAt": now,
            "updatedAt": now,
        }
        result = await self.db.comments.insert_one(comment_doc)
        return {"message": "Comment added successfully.", "commentId": str(result.inserted_id)}

    async def delete_comment(self, comment_id: str) -> dict:
        result = await self.db.comments.delete_one({"_id": object_id(comment_id, "comment id")})
        if result.deleted_count == 0:
            raise NotFound("Comment not found.")
        logger.info("Comment %s deleted", comment_id)
        return {"message": "Comment deleted successfully."}

    ##########
    # Tags
    ##########
    async def create_tag(self, name: str) -> dict:
        name = (name or "").strip().lower()
        if not name:
            raise InvalidArgument("Tag name is required.")
        if await self.db.tags.find_one({"name": name}):
            raise Conflict("Tag already exists.")
        try:
            result = await self.db.tags.insert_one({"name": name, "createdAt": self.clock()})
        except pymongo.errors.DuplicateKeyError:
            raise Conflict("Tag already exists.")
        return {"message": "Tag created successfully.", "tagId": str(result.inserted_id)}

    async def list_tags(self) -> list:
        tags = await self.db.tags.find({}).sort("name", 1).to_list(None)
        return [serialize(t) for t in tags]

    ##########
    # Announcements
    ##########
    async def create_announcement(self, claim, title: str, description: str) -> dict:
        author = await self._author_fields(claim)
        result = await self.db.announcements.insert_one({
            "title": title,
            "description": description,
            "authorId": author["authorId"],
            "authorName": author["authorName"],
            "createdAt": self.clock(),
        })
        return {"message": "Announcement created successfully.", "announcementId": str(result.inserted_id)}

    async def list_announcements(self) -> dict:
        announcements = await self.db.announcements.find({}).sort("createdAt", -1).to_list(None)
        return {
            "announcements": [serialize(a) for a in announcements],
            "count": len(announcements),
        }
