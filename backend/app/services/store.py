"""Persistent store adapter backing the relay.

Every public method opens its own short-lived session, commits on success and
rolls back on failure. Driver errors are converted into
:class:`~app.core.errors.PersistenceError` so callers only ever see the relay
error taxonomy.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from app.core.errors import ConflictError, NotFoundError, PersistenceError, RelayError
from app.models import (
    Channel,
    DirectMessage,
    FriendLink,
    FriendRequestStatus,
    GlobalMessage,
    Message,
    Server,
    ServerMember,
    User,
)
from app.monitoring.metrics import store_failures_total
from app.schemas import (
    ChannelMessageRead,
    ChannelRead,
    DirectMessageRead,
    FriendRecord,
    GlobalMessageRead,
    ServerRead,
    UserRead,
)

logger = logging.getLogger(__name__)


def _is_duplicate(exc: IntegrityError) -> bool:
    # SQLite reports "UNIQUE constraint failed", MySQL error 1062 "Duplicate entry".
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


def canonical_pair(first: str, second: str) -> tuple[str, str]:
    """Return the two usernames in lexicographic order."""

    return (first, second) if first <= second else (second, first)


def _server_snapshot(server: Server) -> ServerRead:
    return ServerRead(
        id=server.id,
        name=server.name,
        owner=server.owner,
        channels=[channel.name for channel in server.channels],
        members=[member.username for member in server.members],
        created_at=server.created_at,
    )


def _friend_record(link: FriendLink) -> FriendRecord:
    return FriendRecord(
        user_low=link.user_low,
        user_high=link.user_high,
        requester=link.requester,
        status=link.status,
        created_at=link.created_at,
    )


def _channel_message(message: Message) -> ChannelMessageRead:
    return ChannelMessageRead(
        id=message.id,
        server=message.server_id,
        channel=message.channel,
        user=message.author,
        text=message.text,
        created_at=message.created_at,
    )


def _direct_message(message: DirectMessage) -> DirectMessageRead:
    return DirectMessageRead(
        id=message.id,
        sender=message.sender,
        recipient=message.recipient,
        text=message.text,
        created_at=message.created_at,
    )


def _global_message(message: GlobalMessage) -> GlobalMessageRead:
    return GlobalMessageRead(
        id=message.id,
        user=message.author,
        text=message.text,
        created_at=message.created_at,
    )


class ChatStore:
    """CRUD surface over users, servers, messages and friend links."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        default_channel: str = "general",
        history_limit: int = 100,
    ) -> None:
        self._session_factory = session_factory
        self.default_channel = default_channel
        self.history_limit = history_limit

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except RelayError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            store_failures_total.labels(operation).inc()
            logger.exception("Store operation %s failed", operation)
            raise PersistenceError(operation) from exc
        finally:
            db.close()

    def _clamp(self, limit: int | None) -> int:
        if limit is None:
            return self.history_limit
        return max(0, min(limit, self.history_limit))

    # users ---------------------------------------------------------------

    def create_user(self, username: str, hashed_password: str) -> UserRead:
        with self._session("create_user") as db:
            if db.scalar(select(User.id).where(User.username == username)) is not None:
                raise ConflictError(f"Username {username} is already taken")
            user = User(username=username, hashed_password=hashed_password)
            db.add(user)
            try:
                db.flush()
            except IntegrityError as exc:
                if not _is_duplicate(exc):
                    raise
                raise ConflictError(f"Username {username} is already taken") from exc
            return UserRead.model_validate(user)

    def get_user(self, username: str) -> UserRead | None:
        with self._session("get_user") as db:
            user = db.scalar(select(User).where(User.username == username))
            return UserRead.model_validate(user) if user is not None else None

    def get_password_hash(self, username: str) -> str | None:
        with self._session("get_password_hash") as db:
            return db.scalar(select(User.hashed_password).where(User.username == username))

    def user_exists(self, username: str) -> bool:
        with self._session("user_exists") as db:
            return db.scalar(select(User.id).where(User.username == username)) is not None

    def delete_all_user_data(self, username: str) -> bool:
        """Remove the user and everything that references them in one transaction.

        Servers owned by the user are removed together with their channels,
        memberships and messages. Returns ``False`` when the user is unknown.
        """

        with self._session("delete_all_user_data") as db:
            if db.scalar(select(User.id).where(User.username == username)) is None:
                return False
            owned = list(db.scalars(select(Server.id).where(Server.owner == username)))
            statements = [
                delete(Message).where(or_(Message.server_id.in_(owned), Message.author == username)),
                delete(Channel).where(Channel.server_id.in_(owned)),
                delete(ServerMember).where(
                    or_(ServerMember.server_id.in_(owned), ServerMember.username == username)
                ),
                delete(Server).where(Server.id.in_(owned)),
                delete(DirectMessage).where(
                    or_(DirectMessage.sender == username, DirectMessage.recipient == username)
                ),
                delete(GlobalMessage).where(GlobalMessage.author == username),
                delete(FriendLink).where(
                    or_(FriendLink.user_low == username, FriendLink.user_high == username)
                ),
                delete(User).where(User.username == username),
            ]
            for statement in statements:
                db.execute(statement.execution_options(synchronize_session=False))
            logger.info("Deleted user %s and %d owned servers", username, len(owned))
            return True

    # servers -------------------------------------------------------------

    @staticmethod
    def _require_user(db: Session, username: str) -> None:
        if db.scalar(select(User.id).where(User.username == username)) is None:
            raise NotFoundError(f"User {username} not found")

    @staticmethod
    def _require_server(db: Session, server_id: str) -> Server:
        server = db.get(Server, server_id)
        if server is None:
            raise NotFoundError(f"Server {server_id} not found")
        return server

    @staticmethod
    def _require_channel(db: Session, server_id: str, name: str) -> Channel:
        channel = db.scalar(
            select(Channel).where(Channel.server_id == server_id, Channel.name == name)
        )
        if channel is None:
            raise NotFoundError(f"Channel {name} not found in server {server_id}")
        return channel

    def server_exists(self, server_id: str) -> bool:
        with self._session("server_exists") as db:
            return db.get(Server, server_id) is not None

    def create_server_with_defaults(self, server_id: str, name: str, owner: str) -> ServerRead:
        """Insert the server, its owner membership and the default channel atomically."""

        with self._session("create_server") as db:
            self._require_user(db, owner)
            if db.get(Server, server_id) is not None:
                raise ConflictError(f"Server {server_id} already exists")
            server = Server(id=server_id, name=name, owner=owner)
            server.members.append(ServerMember(username=owner))
            server.channels.append(Channel(name=self.default_channel))
            db.add(server)
            try:
                db.flush()
            except IntegrityError as exc:
                if not _is_duplicate(exc):
                    raise
                raise ConflictError(f"Server {server_id} already exists") from exc
            return _server_snapshot(server)

    def insert_membership(self, server_id: str, username: str) -> tuple[ServerRead, bool]:
        """Add *username* to the server; the flag is ``False`` when already a member."""

        with self._session("insert_membership") as db:
            server = self._require_server(db, server_id)
            self._require_user(db, username)
            if any(member.username == username for member in server.members):
                return _server_snapshot(server), False
            server.members.append(ServerMember(username=username))
            db.flush()
            return _server_snapshot(server), True

    def insert_channel(self, server_id: str, name: str) -> ChannelRead:
        with self._session("insert_channel") as db:
            self._require_server(db, server_id)
            exists = db.scalar(
                select(Channel.id).where(Channel.server_id == server_id, Channel.name == name)
            )
            if exists is not None:
                raise ConflictError(f"Channel {name} already exists in server {server_id}")
            channel = Channel(server_id=server_id, name=name)
            db.add(channel)
            try:
                db.flush()
            except IntegrityError as exc:
                if not _is_duplicate(exc):
                    raise
                raise ConflictError(f"Channel {name} already exists in server {server_id}") from exc
            return ChannelRead(id=channel.id, server_id=server_id, name=channel.name)

    def is_member(self, server_id: str, username: str) -> bool:
        with self._session("is_member") as db:
            self._require_server(db, server_id)
            found = db.scalar(
                select(ServerMember.id).where(
                    ServerMember.server_id == server_id, ServerMember.username == username
                )
            )
            return found is not None

    def list_all_servers(self) -> list[ServerRead]:
        with self._session("list_all_servers") as db:
            servers = db.scalars(
                select(Server)
                .options(selectinload(Server.channels), selectinload(Server.members))
                .order_by(Server.created_at, Server.id)
            )
            return [_server_snapshot(server) for server in servers]

    def list_servers_for_user(self, username: str) -> list[ServerRead]:
        with self._session("list_servers_for_user") as db:
            servers = db.scalars(
                select(Server)
                .join(ServerMember, ServerMember.server_id == Server.id)
                .where(ServerMember.username == username)
                .options(selectinload(Server.channels), selectinload(Server.members))
                .order_by(ServerMember.joined_at, Server.id)
            )
            return [_server_snapshot(server) for server in servers]

    def list_channels(self, server_id: str) -> list[str]:
        with self._session("list_channels") as db:
            self._require_server(db, server_id)
            return list(
                db.scalars(
                    select(Channel.name).where(Channel.server_id == server_id).order_by(Channel.id)
                )
            )

    def list_members(self, server_id: str) -> list[str]:
        with self._session("list_members") as db:
            self._require_server(db, server_id)
            return list(
                db.scalars(
                    select(ServerMember.username)
                    .where(ServerMember.server_id == server_id)
                    .order_by(ServerMember.id)
                )
            )

    # messages ------------------------------------------------------------

    def insert_channel_message(
        self, server_id: str, channel: str, author: str, text: str
    ) -> ChannelMessageRead:
        with self._session("insert_channel_message") as db:
            self._require_server(db, server_id)
            self._require_channel(db, server_id, channel)
            message = Message(server_id=server_id, channel=channel, author=author, text=text)
            db.add(message)
            db.flush()
            return _channel_message(message)

    def list_channel_messages(
        self, server_id: str, channel: str, limit: int | None = None
    ) -> list[ChannelMessageRead]:
        """Return the newest messages of the channel in ascending order."""

        with self._session("list_channel_messages") as db:
            self._require_server(db, server_id)
            self._require_channel(db, server_id, channel)
            rows = db.scalars(
                select(Message)
                .where(Message.server_id == server_id, Message.channel == channel)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(self._clamp(limit))
            )
            return [_channel_message(row) for row in reversed(list(rows))]

    def insert_direct_message(self, sender: str, recipient: str, text: str) -> DirectMessageRead:
        with self._session("insert_direct_message") as db:
            self._require_user(db, recipient)
            message = DirectMessage(sender=sender, recipient=recipient, text=text)
            db.add(message)
            db.flush()
            return _direct_message(message)

    def list_direct_messages(
        self, first: str, second: str, limit: int | None = None
    ) -> list[DirectMessageRead]:
        with self._session("list_direct_messages") as db:
            self._require_user(db, second)
            rows = db.scalars(
                select(DirectMessage)
                .where(
                    or_(
                        and_(DirectMessage.sender == first, DirectMessage.recipient == second),
                        and_(DirectMessage.sender == second, DirectMessage.recipient == first),
                    )
                )
                .order_by(DirectMessage.created_at.desc(), DirectMessage.id.desc())
                .limit(self._clamp(limit))
            )
            return [_direct_message(row) for row in reversed(list(rows))]

    def insert_global_message(self, author: str, text: str) -> GlobalMessageRead:
        with self._session("insert_global_message") as db:
            message = GlobalMessage(author=author, text=text)
            db.add(message)
            db.flush()
            return _global_message(message)

    def list_global_messages(self, limit: int | None = None) -> list[GlobalMessageRead]:
        with self._session("list_global_messages") as db:
            rows = db.scalars(
                select(GlobalMessage)
                .order_by(GlobalMessage.created_at.desc(), GlobalMessage.id.desc())
                .limit(self._clamp(limit))
            )
            return [_global_message(row) for row in reversed(list(rows))]

    # friends -------------------------------------------------------------

    @staticmethod
    def _find_link(db: Session, first: str, second: str) -> FriendLink | None:
        low, high = canonical_pair(first, second)
        return db.scalar(
            select(FriendLink).where(FriendLink.user_low == low, FriendLink.user_high == high)
        )

    def find_friend_record(self, first: str, second: str) -> FriendRecord | None:
        with self._session("find_friend_record") as db:
            link = self._find_link(db, first, second)
            return _friend_record(link) if link is not None else None

    def insert_friend_record(self, requester: str, addressee: str) -> FriendRecord:
        with self._session("insert_friend_record") as db:
            self._require_user(db, addressee)
            if self._find_link(db, requester, addressee) is not None:
                raise ConflictError("Already friends or request pending")
            low, high = canonical_pair(requester, addressee)
            link = FriendLink(
                user_low=low,
                user_high=high,
                requester=requester,
                status=FriendRequestStatus.PENDING,
            )
            db.add(link)
            try:
                db.flush()
            except IntegrityError as exc:
                if not _is_duplicate(exc):
                    raise
                raise ConflictError("Already friends or request pending") from exc
            return _friend_record(link)

    def update_friend_status(
        self, first: str, second: str, status: FriendRequestStatus
    ) -> FriendRecord | None:
        with self._session("update_friend_status") as db:
            link = self._find_link(db, first, second)
            if link is None:
                return None
            link.status = status
            db.flush()
            return _friend_record(link)

    def delete_friend_record(self, first: str, second: str) -> FriendRecord | None:
        with self._session("delete_friend_record") as db:
            link = self._find_link(db, first, second)
            if link is None:
                return None
            record = _friend_record(link)
            db.delete(link)
            return record

    def list_friends_for_user(self, username: str) -> list[FriendRecord]:
        with self._session("list_friends_for_user") as db:
            links = db.scalars(
                select(FriendLink)
                .where(or_(FriendLink.user_low == username, FriendLink.user_high == username))
                .order_by(FriendLink.created_at, FriendLink.id)
            )
            return [_friend_record(link) for link in links]
