##########
# Imports
##########
import logging
from typing import Optional

import pymongo.errors
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from . import database
from .auth import GatedRoute, acting_voter, is_admin, require_admin, require_user
from .config import Settings
from .content import ContentService
from .dashboard import DashboardQueries
from .errors import Forbidden, ForumError
from .feed import FeedRanker
from .identity import Claim, JWTIdentityVerifier
from .pagination import parse_bool
from .reports import ReportService
from .schemas import (
    AnnouncementCreate,
    CommentCreate,
    PostCreate,
    ReportCreate,
    RoleUpdate,
    StatusUpdate,
    TagCreate,
    UserCreate,
    VoteRequest,
)
from .users import UserService
from .votes import VoteEngine

logger = logging.getLogger(__name__)


##################
# Error Handlers
##################
async def forum_error_handler(request: Request, exc: ForumError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        problems.append(f"{field or 'body'}: {error.get('msg')}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request. " + "; ".join(problems)},
    )


async def duplicate_key_handler(request: Request, exc: pymongo.errors.DuplicateKeyError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"message": "Already exists."})


async def store_error_handler(request: Request, exc: pymongo.errors.PyMongoError):
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error."},
    )


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error."},
    )


#####################
# FastAPI App Setup
#####################
def create_app(settings: Settings = None, db=None, verifier=None) -> FastAPI:
    """Build the app with its store and verifier handles injected"""
    settings = settings or Settings.from_env()
    db = db if db is not None else database.connect(settings)
    verifier = verifier or JWTIdentityVerifier.from_settings(settings)

    app = FastAPI(title="NerdTalks", description="Discussion forum backend")
    app.router.route_class = GatedRoute
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.db = db
    app.state.verifier = verifier
    app.state.votes = VoteEngine(db)
    app.state.feed = FeedRanker(db)
    app.state.reports = ReportService(db)
    app.state.dashboard = DashboardQueries(db)
    app.state.users = UserService(db)
    app.state.content = ContentService(db)

    app.add_exception_handler(ForumError, forum_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(pymongo.errors.DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(pymongo.errors.PyMongoError, store_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.on_event("startup")
    async def startup_event():
        await database.ping(db)
        await database.ensure_indexes(db)

    register_routes(app)
    return app


##########
# Routes
##########
def register_routes(app: FastAPI):
    state = app.state

    @app.get("/", response_class=PlainTextResponse)
    async def home():
        return "Nerds are talking"

    ##########
    # Users
    ##########
    @app.post("/users", status_code=status.HTTP_201_CREATED)
    async def create_user(body: UserCreate, claim: Claim = Depends(require_user)):
        """Register the signed-in user"""
        if body.uid != claim.uid:
            raise Forbidden("Forbidden access: uid does not match credentials.")
        return await state.users.create_user(body.uid, body.name, body.email, body.avatar)

    @app.get("/users", dependencies=[Depends(require_admin)])
    async def list_users(page: Optional[str] = None, limit: Optional[str] = None):
        return await state.users.list_users(page, limit)

    @app.get("/users/{uid}", dependencies=[Depends(require_user)])
    async def get_user(uid: str):
        return await state.users.get_user(uid)

    @app.get("/users/{uid}/role", dependencies=[Depends(require_user)])
    async def get_user_role(uid: str):
        return await state.users.get_role(uid)

    @app.patch("/users/{uid}/role", dependencies=[Depends(require_admin)])
    async def promote_user(uid: str, body: RoleUpdate):
        return await state.users.promote_to_admin(uid, body.role)

    ##################
    # Posts & Feed
    ##################
    @app.post("/posts", status_code=status.HTTP_201_CREATED)
    async def create_post(body: PostCreate, claim: Claim = Depends(require_user)):
        return await state.content.create_post(claim, body.title, body.content, body.tag)

    @app.get("/posts")
    async def list_posts(
        page: Optional[str] = None,
        limit: Optional[str] = None,
        tag: Optional[str] = None,
        sortByPopularity: Optional[str] = None,
    ):
        """Public feed, newest first or by popularity"""
        return await state.feed.list_posts(page, limit, tag, parse_bool(sortByPopularity))

    @app.get("/posts/user/{authorId}")
    async def posts_by_author(
        authorId: str,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        claim: Claim = Depends(require_user),
    ):
        """Author dashboard; visible to the author and to admins"""
        if claim.uid != authorId and not await is_admin(state.db, claim.uid):
            raise Forbidden("Forbidden access.")
        return await state.dashboard.posts_by_author(authorId, page, limit)

    @app.get("/posts/{postId}")
    async def get_post(postId: str):
        return await state.feed.get_post(postId)

    @app.delete("/posts/{postId}")
    async def delete_post(postId: str, claim: Claim = Depends(require_user)):
        admin = await is_admin(state.db, claim.uid)
        return await state.content.delete_post(postId, claim, admin)

    @app.patch("/posts/{postId}/vote")
    async def vote_post(postId: str, body: VoteRequest, claim: Claim = Depends(require_user)):
        """Apply upvote, downvote, -upvote or -downvote for the caller"""
        voter = acting_voter(claim)
        if body.email and body.email != voter:
            logger.debug("Ignoring body email on vote for post %s", postId)
        return await state.votes.apply(postId, voter, body.type)

    #############
    # Comments
    #############
    @app.get("/posts/{postId}/comments")
    async def comments_by_post(postId: str, page: Optional[str] = None, limit: Optional[str] = None):
        return await state.dashboard.comments_by_post(postId, page, limit)

    @app.post("/comments", status_code=status.HTTP_201_CREATED)
    async def create_comment(body: CommentCreate, claim: Claim = Depends(require_user)):
        return await state.content.create_comment(claim, body.postId, body.content)

    @app.delete("/comments/{commentId}", dependencies=[Depends(require_admin)])
    async def delete_comment(commentId: str):
        return await state.content.delete_comment(commentId)

    ############
    # Reports
    ############
    @app.get("/reports", dependencies=[Depends(require_admin)])
    async def list_reports(
        page: Optional[str] = None,
        limit: Optional[str] = None,
        status: Optional[str] = None,
    ):
        return await state.reports.list_reports(page, limit, status)

    @app.post("/reports/comment", status_code=201)
    async def report_comment(body: ReportCreate, claim: Claim = Depends(require_user)):
        return await state.reports.file_report(
            body.commentId,
            body.postId,
            acting_voter(claim),
            body.reason,
            body.commentContent,
        )

    @app.patch("/reports/{reportId}/status", dependencies=[Depends(require_admin)])
    async def update_report_status(reportId: str, body: StatusUpdate):
        return await state.reports.set_status(reportId, body.status)

    @app.delete("/reports/{reportId}/delete", dependencies=[Depends(require_admin)])
    async def delete_report(reportId: str):
        return await state.reports.delete_report(reportId)

    ##########
    # Tags
    ##########
    @app.post("/tags", status_code=201, dependencies=[Depends(require_admin)])
    async def create_tag(body: TagCreate):
        return await state.content.create_tag(body.name)

    @app.get("/tags")
    async def list_tags():
        return await state.content.list_tags()

    ##################
    # Announcements
    ##################
    @app.post("/announcements", status_code=201)
    async def create_announcement(body: AnnouncementCreate, claim: Claim = Depends(require_admin)):
        return await state.content.create_announcement(claim, body.title, body.description)

    @app.get("/announcements")
    async def list_announcements():
        return await state.content.list_announcements()
