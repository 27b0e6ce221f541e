"""In-memory repository for users, blog posts, likes, contact and chat messages.

``MemStorage`` is the only owner of entity state. Lookups that miss return
``None`` (or ``False`` for deletes); exceptions are reserved for integrity
violations such as a duplicate like. Every public method runs under one
re-entrant lock so that compound updates (a like row plus the post's cached
counter) are never observed half-applied by concurrent request threads.

State lives for the lifetime of the process only.
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from schemas import (
    BlogLike,
    BlogPost,
    BlogPostUpdate,
    ChatMessage,
    ContactMessage,
    InsertBlogPost,
    InsertChatMessage,
    InsertContactMessage,
    InsertUser,
    User,
)

logger = logging.getLogger(__name__)

LikeKey = Tuple[str, str]

# Owned by the store; a partial update may never overwrite these.
PROTECTED_POST_FIELDS = frozenset({"id", "likes", "created_at", "updated_at"})


class StorageError(Exception):
    """Base class for integrity errors raised by the store."""


class DuplicateLikeError(StorageError):
    def __init__(self, post_id: str, session_id: str):
        super().__init__(f"Post {post_id} already liked by session {session_id}")
        self.post_id = post_id
        self.session_id = session_id


class DuplicateUsernameError(StorageError):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class MemStorage:
    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utcnow
        self._last_timestamp: Optional[datetime] = None
        self._lock = threading.RLock()

        self._users: Dict[str, User] = {}
        self._blog_posts: Dict[str, BlogPost] = {}
        self._blog_likes: Dict[LikeKey, BlogLike] = {}
        self._contact_messages: Dict[str, ContactMessage] = {}
        self._chat_messages: Dict[str, ChatMessage] = {}

    def _now(self) -> datetime:
        # Strictly increasing, so ordering by createdAt never ties.
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    # ---- Users ----
    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return user.model_copy()
            return None

    def create_user(self, data: InsertUser) -> User:
        with self._lock:
            if self.get_user_by_username(data.username) is not None:
                raise DuplicateUsernameError(f"Username already taken: {data.username}")
            user = User(id=new_id(), **data.model_dump())
            self._users[user.id] = user
            logger.debug("Created user %s", user.id)
            return user.model_copy()

    # ---- Blog posts ----
    def list_blog_posts(self, category: Optional[str] = None) -> List[BlogPost]:
        """Published posts, newest first, optionally restricted to one category."""
        with self._lock:
            posts = [
                post for post in self._blog_posts.values()
                if post.published and (not category or post.category == category)
            ]
            posts.sort(key=lambda post: post.created_at, reverse=True)
            return [post.model_copy() for post in posts]

    def get_blog_post(self, post_id: str) -> Optional[BlogPost]:
        with self._lock:
            post = self._blog_posts.get(post_id)
            return post.model_copy() if post else None

    def create_blog_post(self, data: InsertBlogPost) -> BlogPost:
        with self._lock:
            now = self._now()
            post = BlogPost(
                **data.model_dump(),
                id=new_id(),
                likes=0,
                created_at=now,
                updated_at=now,
            )
            self._blog_posts[post.id] = post
            logger.debug("Created blog post %s", post.id)
            return post.model_copy()

    def update_blog_post(
        self,
        post_id: str,
        changes: Union[BlogPostUpdate, Mapping[str, Any]],
    ) -> Optional[BlogPost]:
        """Shallow-merge ``changes`` over the stored post and bump ``updated_at``.

        ``id``, ``likes`` and ``created_at`` are never taken from ``changes``;
        the like counter belongs to create_blog_like/delete_blog_like.
        """
        if isinstance(changes, BlogPostUpdate):
            changes = changes.changes()
        update = {k: v for k, v in changes.items() if k not in PROTECTED_POST_FIELDS}
        with self._lock:
            existing = self._blog_posts.get(post_id)
            if existing is None:
                return None
            update["updated_at"] = self._now()
            updated = existing.model_copy(update=update)
            self._blog_posts[post_id] = updated
            logger.debug("Updated blog post %s fields=%s", post_id, sorted(update))
            return updated.model_copy()

    def delete_blog_post(self, post_id: str) -> bool:
        with self._lock:
            if self._blog_posts.pop(post_id, None) is None:
                return False
            orphaned = [key for key in self._blog_likes if key[0] == post_id]
            for key in orphaned:
                del self._blog_likes[key]
            logger.debug("Deleted blog post %s with %d likes", post_id, len(orphaned))
            return True

    # ---- Likes ----
    def get_blog_like(self, post_id: str, session_id: str) -> Optional[BlogLike]:
        with self._lock:
            like = self._blog_likes.get((post_id, session_id))
            return like.model_copy() if like else None

    def create_blog_like(self, post_id: str, session_id: str) -> Optional[BlogLike]:
        """Store a like and increment the post's cached counter in one step.

        Returns None when the post does not exist. Raises DuplicateLikeError,
        leaving state untouched, if this session already liked the post.
        """
        key = (post_id, session_id)
        with self._lock:
            post = self._blog_posts.get(post_id)
            if post is None:
                return None
            if key in self._blog_likes:
                raise DuplicateLikeError(post_id, session_id)
            like = BlogLike(
                id=new_id(),
                post_id=post_id,
                session_id=session_id,
                created_at=self._now(),
            )
            self._blog_likes[key] = like
            self._blog_posts[post_id] = post.model_copy(update={"likes": post.likes + 1})
            return like.model_copy()

    def delete_blog_like(self, post_id: str, session_id: str) -> bool:
        with self._lock:
            if self._blog_likes.pop((post_id, session_id), None) is None:
                return False
            post = self._blog_posts.get(post_id)
            if post is not None and post.likes > 0:
                self._blog_posts[post_id] = post.model_copy(update={"likes": post.likes - 1})
            return True

    def count_blog_likes(self, post_id: str) -> int:
        """Live count from the like rows, independent of ``BlogPost.likes``."""
        with self._lock:
            return sum(1 for like in self._blog_likes.values() if like.post_id == post_id)

    # ---- Contact messages ----
    def list_contact_messages(self) -> List[ContactMessage]:
        with self._lock:
            messages = sorted(
                self._contact_messages.values(),
                key=lambda message: message.created_at,
                reverse=True,
            )
            return [message.model_copy() for message in messages]

    def get_contact_message(self, message_id: str) -> Optional[ContactMessage]:
        with self._lock:
            message = self._contact_messages.get(message_id)
            return message.model_copy() if message else None

    def create_contact_message(self, data: InsertContactMessage) -> ContactMessage:
        with self._lock:
            message = ContactMessage(
                **data.model_dump(),
                id=new_id(),
                status="new",
                created_at=self._now(),
            )
            self._contact_messages[message.id] = message
            logger.debug("Stored contact message %s", message.id)
            return message.model_copy()

    def update_contact_message_status(self, message_id: str, status: str) -> Optional[ContactMessage]:
        # ``status`` is checked against ContactStatus by the route layer.
        with self._lock:
            message = self._contact_messages.get(message_id)
            if message is None:
                return None
            updated = message.model_copy(update={"status": status})
            self._contact_messages[message_id] = updated
            return updated.model_copy()

    # ---- Chat messages ----
    def list_chat_messages(self, session_id: Optional[str] = None) -> List[ChatMessage]:
        """One session's conversation (oldest first) or every message (newest first)."""
        with self._lock:
            if session_id:
                messages = [m for m in self._chat_messages.values() if m.session_id == session_id]
                messages.sort(key=lambda m: m.created_at)
            else:
                messages = sorted(self._chat_messages.values(), key=lambda m: m.created_at, reverse=True)
            return [m.model_copy() for m in messages]

    def create_chat_message(self, data: InsertChatMessage) -> ChatMessage:
        with self._lock:
            message = ChatMessage(**data.model_dump(), id=new_id(), created_at=self._now())
            self._chat_messages[message.id] = message
            return message.model_copy()

    # ---- Sample data ----
    def seed_sample_posts(self) -> int:
        """Load the firm's sample articles; returns how many were added."""
        added = 0
        with self._lock:
            for data in SAMPLE_POSTS:
                if data["id"] in self._blog_posts:
                    continue
                post = BlogPost(**data, likes=0, published=True, updated_at=data["created_at"])
                self._blog_posts[post.id] = post
                added += 1
        logger.info("Seeded %d sample blog posts", added)
        return added


SAMPLE_POSTS = [
    {
        "id": "1",
        "title": "Novas Regras do Trabalho Remoto: O que sua Empresa Precisa Saber",
        "content": (
            "<p>Com as mudanças na legislação trabalhista, o trabalho remoto ganhou novas "
            "regulamentações que impactam diretamente empresas e funcionários.</p>"
            "<h3>Principais Mudanças</h3>"
            "<p>A Lei 14.442/2022 trouxe importantes modificações na CLT, estabelecendo regras "
            "específicas para o trabalho remoto:</p>"
            "<ul><li>Definição clara de trabalho remoto vs. home office</li>"
            "<li>Responsabilidades sobre equipamentos e infraestrutura</li>"
            "<li>Controle de jornada e direito à desconexão</li>"
            "<li>Políticas de reembolso de despesas</li></ul>"
        ),
        "excerpt": (
            "Análise completa das mudanças na legislação trabalhista para modalidade "
            "home office e trabalho híbrido."
        ),
        "category": "Direito do Trabalho",
        "image_url": "https://images.unsplash.com/photo-1556157382-97eda2d62296?auto=format&fit=crop&w=800&h=400",
        "read_time": "5 min",
        "created_at": datetime(2024, 12, 15, 10, 0, tzinfo=timezone.utc),
    },
    {
        "id": "2",
        "title": "Aposentadoria Especial: Guia Completo para Profissionais da Saúde",
        "content": (
            "<p>A aposentadoria especial é um benefício previdenciário destinado aos "
            "trabalhadores expostos a agentes nocivos à saúde.</p>"
            "<h3>Requisitos Essenciais</h3>"
            "<ul><li>Tempo de contribuição específico (25 anos para a maioria dos casos)</li>"
            "<li>Exposição permanente aos agentes nocivos</li>"
            "<li>Documentação adequada (PPP, LTCAT, etc.)</li></ul>"
        ),
        "excerpt": (
            "Entenda os requisitos e documentações necessárias para conquistar sua "
            "aposentadoria especial."
        ),
        "category": "Direito Previdenciário",
        "image_url": "https://images.unsplash.com/photo-1589994965851-a8f479c573a9?auto=format&fit=crop&w=800&h=400",
        "read_time": "8 min",
        "created_at": datetime(2024, 12, 12, 14, 30, tzinfo=timezone.utc),
    },
    {
        "id": "3",
        "title": "Divórcio Consensual: Passo a Passo para um Processo Mais Rápido",
        "content": (
            "<p>O divórcio consensual permite a dissolução do casamento de forma mais ágil "
            "quando há acordo entre os cônjuges sobre todos os aspectos da separação.</p>"
            "<h3>Requisitos Necessários</h3>"
            "<ul><li>Divisão dos bens</li><li>Guarda dos filhos menores</li>"
            "<li>Pensão alimentícia</li><li>Outras questões patrimoniais</li></ul>"
        ),
        "excerpt": (
            "Conheça as vantagens do divórcio consensual e como tornar o processo mais "
            "ágil e menos desgastante."
        ),
        "category": "Direito de Família e Sucessão",
        "image_url": "https://images.unsplash.com/photo-1582213782179-e0d53f98f2ca?auto=format&fit=crop&w=800&h=400",
        "read_time": "6 min",
        "created_at": datetime(2024, 12, 10, 9, 15, tzinfo=timezone.utc),
    },
]
