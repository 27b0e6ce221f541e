import logging
import secrets
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from chatbot import ChatResponder
from config import Settings, configure_logging, get_settings
from errors import APIError, AuthError, BadRequestError, ConflictError, NotFoundError
from schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminStatus,
    BlogPost,
    BlogPostUpdate,
    ChatExchange,
    ChatMessage,
    ContactMessage,
    ContactStatusUpdate,
    ErrorDetail,
    ErrorResponse,
    InsertBlogPost,
    InsertChatMessage,
    InsertContactMessage,
    LikeCountResponse,
    LikeRequest,
    LikeResponse,
    LikeStatusResponse,
    MessageResponse,
    UnlikeResponse,
    field_errors,
)
from storage import DuplicateLikeError, MemStorage

logger = logging.getLogger(__name__)

CORS_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
CORS_HEADERS = "Origin, X-Requested-With, Content-Type, Accept, Authorization"


# ====== Dependencies ======
def get_storage(request: Request) -> MemStorage:
    return request.app.state.storage


def get_responder(request: Request) -> ChatResponder:
    return request.app.state.responder


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


def resolve_session_id(request: Request, supplied: Optional[str], assign: bool = False) -> Optional[str]:
    """Session identity for likes: the client's ``sessionId``, else the one kept in the cookie session.

    With ``assign`` a missing identity is generated and stored in the cookie
    session, so later like/unlike/status calls from the same client see it.
    """
    if supplied:
        return supplied
    session_id = request.session.get("session_id")
    if not session_id and assign:
        session_id = new_session_id()
        request.session["session_id"] = session_id
    return session_id


def error_response(status_code: int, error: str, error_type: str,
                   details: Optional[List[ErrorDetail]] = None) -> JSONResponse:
    body = ErrorResponse(error=error, type=error_type, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


router = APIRouter()


# ---- Blog ----
@router.get("/blog", response_model=List[BlogPost])
def list_blog_posts(category: Optional[str] = None, storage: MemStorage = Depends(get_storage)):
    return storage.list_blog_posts(category)


@router.get("/blog/{post_id}", response_model=BlogPost)
def get_blog_post(post_id: str, storage: MemStorage = Depends(get_storage)):
    post = storage.get_blog_post(post_id)
    if not post:
        raise NotFoundError("Blog post not found")
    return post


@router.post("/blog", response_model=BlogPost, status_code=status.HTTP_201_CREATED)
def create_blog_post(payload: InsertBlogPost, storage: MemStorage = Depends(get_storage)):
    post = storage.create_blog_post(payload)
    logger.info("Blog post created: %s (%s)", post.id, post.category)
    return post


@router.put("/blog/{post_id}", response_model=BlogPost)
def update_blog_post(post_id: str, payload: BlogPostUpdate, storage: MemStorage = Depends(get_storage)):
    post = storage.update_blog_post(post_id, payload)
    if not post:
        raise NotFoundError("Blog post not found")
    return post


@router.delete("/blog/{post_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_blog_post(post_id: str, storage: MemStorage = Depends(get_storage)):
    if not storage.delete_blog_post(post_id):
        raise NotFoundError("Blog post not found")
    logger.info("Blog post deleted: %s", post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- Likes ----
@router.post("/blog/{post_id}/like", response_model=LikeResponse, status_code=status.HTTP_201_CREATED)
def like_blog_post(post_id: str, request: Request, payload: Optional[LikeRequest] = None,
                   storage: MemStorage = Depends(get_storage)):
    session_id = resolve_session_id(request, payload.session_id if payload else None, assign=True)
    try:
        like = storage.create_blog_like(post_id, session_id)
    except DuplicateLikeError:
        raise ConflictError("Post already liked by this session")
    if like is None:
        raise NotFoundError("Blog post not found")
    return LikeResponse(like=like, like_count=storage.count_blog_likes(post_id))


@router.delete("/blog/{post_id}/like", response_model=UnlikeResponse)
def unlike_blog_post(post_id: str, request: Request, payload: Optional[LikeRequest] = None,
                     storage: MemStorage = Depends(get_storage)):
    session_id = resolve_session_id(request, payload.session_id if payload else None)
    if not session_id:
        raise BadRequestError("Session not found", details=[
            ErrorDetail(field="sessionId", message="Field required", code="missing"),
        ])
    if not storage.delete_blog_like(post_id, session_id):
        raise NotFoundError("Like not found")
    return UnlikeResponse(message="Like removed", like_count=storage.count_blog_likes(post_id))


@router.get("/blog/{post_id}/like-status", response_model=LikeStatusResponse)
def get_like_status(post_id: str, request: Request,
                    session_id: Optional[str] = Query(None, alias="sessionId"),
                    storage: MemStorage = Depends(get_storage)):
    session_id = resolve_session_id(request, session_id)
    liked = bool(session_id) and storage.get_blog_like(post_id, session_id) is not None
    return LikeStatusResponse(liked=liked, like_count=storage.count_blog_likes(post_id))


@router.get("/blog/{post_id}/like-count", response_model=LikeCountResponse)
def get_like_count(post_id: str, storage: MemStorage = Depends(get_storage)):
    return LikeCountResponse(like_count=storage.count_blog_likes(post_id))


# ---- Contact ----
@router.get("/contact", response_model=List[ContactMessage])
def list_contact_messages(storage: MemStorage = Depends(get_storage)):
    return storage.list_contact_messages()


@router.post("/contact", response_model=ContactMessage, status_code=status.HTTP_201_CREATED)
def submit_contact(payload: InsertContactMessage, storage: MemStorage = Depends(get_storage)):
    message = storage.create_contact_message(payload)
    logger.info("Contact message %s received for area %s", message.id, message.area)
    return message


@router.patch("/contact/{message_id}/status", response_model=ContactMessage)
def update_contact_status(message_id: str, payload: ContactStatusUpdate,
                          storage: MemStorage = Depends(get_storage)):
    message = storage.update_contact_message_status(message_id, payload.status)
    if not message:
        raise NotFoundError("Contact message not found")
    return message


# ---- Chat ----
@router.get("/chat", response_model=List[ChatMessage])
def list_chat_messages(session_id: Optional[str] = Query(None, alias="sessionId"),
                       storage: MemStorage = Depends(get_storage)):
    return storage.list_chat_messages(session_id)


@router.post("/chat", response_model=ChatExchange, status_code=status.HTTP_201_CREATED)
def send_chat_message(payload: InsertChatMessage, storage: MemStorage = Depends(get_storage),
                      responder: ChatResponder = Depends(get_responder)):
    if payload.sender != "user":
        raise BadRequestError("Invalid chat message data", details=[
            ErrorDetail(field="sender", message="Only user messages can be posted", code="value_error"),
        ])
    user_message = storage.create_chat_message(payload)
    bot_message = responder.respond(user_message)
    return ChatExchange(user_message=user_message, bot_message=bot_message)


# ---- Admin ----
@router.post("/admin/login", response_model=AdminLoginResponse)
def admin_login(payload: AdminLoginRequest, request: Request,
                settings: Settings = Depends(get_app_settings)):
    supplied = payload.password.encode("utf-8")
    expected = settings.admin_password.encode("utf-8")
    if not secrets.compare_digest(supplied, expected):
        logger.warning("Rejected admin login from %s", request.client.host if request.client else "unknown")
        raise AuthError("Invalid password")
    request.session["is_admin"] = True
    logger.info("Admin logged in")
    return AdminLoginResponse(message="Login successful", is_admin=True)


@router.post("/admin/logout", response_model=MessageResponse)
def admin_logout(request: Request):
    request.session["is_admin"] = False
    return MessageResponse(message="Logout successful")


@router.get("/admin/status", response_model=AdminStatus)
def admin_status(request: Request):
    return AdminStatus(is_admin=bool(request.session.get("is_admin", False)))


# ====== Exception handlers ======
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = field_errors(exc.errors())
    logger.warning(
        "Validation error on %s %s: %s",
        request.method, request.url.path, [d.field for d in details],
    )
    return error_response(400, "Invalid request data", "validation_error", details)


async def api_exception_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.message, exc.error_type, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail), "http_error")
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error", "internal_error")


# ====== Application ======
def create_app(settings: Optional[Settings] = None, storage: Optional[MemStorage] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if storage is None:
        storage = MemStorage()
        if settings.seed_sample_data:
            storage.seed_sample_posts()

    app = FastAPI(title="Valença & Soares API", version="1.0.0")
    app.state.settings = settings
    app.state.storage = storage
    app.state.responder = ChatResponder(storage)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age,
        https_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Outermost: every OPTIONS request is answered here with an empty 200.
    @app.middleware("http")
    async def preflight(request: Request, call_next):
        if request.method != "OPTIONS":
            return await call_next(request)
        response = Response(status_code=200)
        response.headers["Access-Control-Allow-Origin"] = request.headers.get("origin", "*")
        response.headers["Access-Control-Allow-Methods"] = CORS_METHODS
        response.headers["Access-Control-Allow-Headers"] = CORS_HEADERS
        response.headers["Access-Control-Allow-Credentials"] = "true"
        return response

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(APIError, api_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/")
    def root():
        return {"message": "Valença & Soares backend running"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    app.include_router(router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
