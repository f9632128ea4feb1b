import logging

from .database import object_id
from .errors import InvalidArgument, NotFound

logger = logging.getLogger(__name__)

UPVOTE = "upvote"
DOWNVOTE = "downvote"
REMOVE_UPVOTE = "-upvote"
REMOVE_DOWNVOTE = "-downvote"

# Each operation is one atomic update: joining a set always leaves the opposite one
VOTE_UPDATES = {
    UPVOTE: lambda voter: {"$addToSet": {"upvoters": voter}, "$pull": {"downvoters": voter}},
    DOWNVOTE: lambda voter: {"$addToSet": {"downvoters": voter}, "$pull": {"upvoters": voter}},
    REMOVE_UPVOTE: lambda voter: {"$pull": {"upvoters": voter}},
    REMOVE_DOWNVOTE: lambda voter: {"$pull": {"downvoters": voter}},
}

ALIASES = {
    "removeUpvote": REMOVE_UPVOTE,
    "removeDownvote": REMOVE_DOWNVOTE,
}


def popularity(post: dict) -> int:
    """Upvoter count minus downvoter count"""
    return len(post.get("upvoters") or []) - len(post.get("downvoters") or [])


def normalize_operation(op: str) -> str:
    op = ALIASES.get(op, op)
    if op not in VOTE_UPDATES:
        raise InvalidArgument("Invalid vote type. Use upvote, downvote, -upvote or -downvote.")
    return op


class VoteEngine:
    """Keeps a voter in at most one of a post's upvoters/downvoters sets"""

    def __init__(self, db):
        self.db = db

    async def apply(self, post_id: str, voter: str, op: str) -> dict:
        op = normalize_operation(op)
        if not voter:
            raise InvalidArgument("Voter is required.")
        _id = object_id(post_id, "post id")

        result = await self.db.posts.update_one({"_id": _id}, VOTE_UPDATES[op](voter))
        if result.matched_count == 0:
            raise NotFound("Post not found.")

        logger.info("Applied %s on post %s", op, post_id)
        return {"message": f"{op} applied.", "type": op}
