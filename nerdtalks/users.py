import logging

import pymongo.errors

from .auth import ADMIN_ROLE
from .database import serialize, utcnow
from .errors import Conflict, InvalidArgument, NotFound
from .pagination import page_params, total_pages

logger = logging.getLogger(__name__)

USER_ROLE = "user"
STARTER_BADGES = ["bronze"]


class UserService:
    def __init__(self, db, clock=utcnow):
        self.db = db
        self.clock = clock

    async def create_user(self, uid, name, email, avatar=None) -> dict:
        """Register a user the first time they sign in"""
        if not uid or not name or not email:
            raise InvalidArgument("uid, name, and email are required.")

        # Prevent duplicate entries
        if await self.db.users.find_one({"uid": uid}):
            raise Conflict("User already exists.")

        user_doc = {
            "uid": uid,
            "name": name,
            "email": email,
            "avatar": avatar or "",
            "role": USER_ROLE,
            "badges": list(STARTER_BADGES),
            "joinedAt": self.clock(),
        }
        try:
            result = await self.db.users.insert_one(user_doc)
        except pymongo.errors.DuplicateKeyError:
            # Lost a race with a concurrent sign-up for the same uid
            raise Conflict("User already exists.")

        logger.info("Created user %s", uid)
        return {"message": "User created successfully.", "userId": str(result.inserted_id)}

    async def get_user(self, uid: str) -> dict:
        user = await self.db.users.find_one({"uid": uid})
        if not user:
            raise NotFound("User not found.")
        return serialize(user)

    async def get_role(self, uid: str) -> dict:
        user = await self.db.users.find_one({"uid": uid}, {"role": 1})
        if not user:
            raise NotFound("User not found.")
        return {"role": user.get("role", USER_ROLE)}

    async def promote_to_admin(self, uid: str, role: str) -> dict:
        """Role changes only go one way, user -> admin"""
        if role != ADMIN_ROLE:
            raise InvalidArgument("Only promotion to admin is supported.")

        result = await self.db.users.update_one({"uid": uid}, {"$set": {"role": ADMIN_ROLE}})
        if result.matched_count == 0:
            raise NotFound("User not found.")

        logger.info("Promoted user %s to admin", uid)
        return {"message": "User promoted to admin."}

    async def list_users(self, page=None, limit=None) -> dict:
        page, limit, skip = page_params(page, limit, 10)

        cursor = self.db.users.find({}).sort([("joinedAt", -1), ("_id", -1)]).skip(skip).limit(limit)
        users = [serialize(u) for u in await cursor.to_list(None)]
        total_users = await self.db.users.count_documents({})

        return {
            "users": users,
            "totalUsers": total_users,
            "currentPage": page,
            "totalPages": total_pages(total_users, limit),
        }
