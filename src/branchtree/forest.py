"""Forest -- the public SDK entry point for BranchTree.

Ties together storage, the tree operations and the text-generation
collaborator into a user-facing API.  Users interact with
``Forest.open()``, ``f.create_conversation()``, ``f.fork()``,
``f.merge()``, etc.

Every public method is one unit of work: it commits on success and rolls
back on any exception, so a failed merge or fork leaves no partial
writes behind.  User scoping is explicit: operations that create or list
branches take a ``user_id``.

Not thread-safe.  Each thread should open its own ``Forest``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterable

from branchtree.exceptions import BranchTreeError, MessageNotFoundError
from branchtree.llm.generator import ChatTextGenerator
from branchtree.models.config import ForestConfig
from branchtree.models.message import MessageRole
from branchtree.operations import branch as branch_ops
from branchtree.operations import tree as tree_ops
from branchtree.operations.fork import fork as _fork
from branchtree.operations.lineage import format_history_for_generation, resolve_lineage
from branchtree.operations.merge import merge_branch
from branchtree.operations.navigation import history_with_siblings, navigate_sibling
from branchtree.operations.rows import branch_info, message_info
from branchtree.operations.title import title_branch
from branchtree.storage.engine import create_forest_engine, create_session_factory, init_db
from branchtree.storage.sqlite import SqliteBranchRepository, SqliteMessageRepository

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from branchtree.llm.protocols import LLMClient, TextGenerator
    from branchtree.models.branch import BranchInfo, BranchNode
    from branchtree.models.merge import MergeResult
    from branchtree.models.message import HistoryEntry, MessageInfo, SiblingSet
    from branchtree.operations.navigation import Direction

logger = logging.getLogger(__name__)


class Forest:
    """Primary entry point for BranchTree -- branching conversation trees.

    Create a forest via :meth:`Forest.open` (recommended) or
    :meth:`Forest.from_components` (testing / DI).

    Example::

        with Forest.open() as f:
            conv, _ = f.create_conversation("user-1")
            hello = f.extend(conv.id, "Hello")
            branch, msg = f.fork(hello.id, "What about X?", user_id="user-1")
            print([m.content for m in f.get_history(msg.id)])
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        *,
        engine: Engine | None,
        session: Session,
        message_repo: SqliteMessageRepository,
        branch_repo: SqliteBranchRepository,
        config: ForestConfig,
        generator: TextGenerator | None = None,
    ) -> None:
        self._engine = engine
        self._session = session
        self._message_repo = message_repo
        self._branch_repo = branch_repo
        self._config = config
        self._generator = generator
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str | None = None,
        *,
        url: str | None = None,
        config: ForestConfig | None = None,
        generator: TextGenerator | None = None,
    ) -> Forest:
        """Open (or create) a BranchTree database.

        Args:
            path: SQLite path; overrides ``config.db_path``.  Without either,
                the database is in-memory.
            url: Full SQLAlchemy URL; overrides *path* and ``config.db_url``.
            config: Forest configuration.  Defaults created if *None*.
            generator: Text generator for merge summaries and titles.
                Without one, merges record a fallback summary.

        Returns:
            A ready-to-use ``Forest`` instance.
        """
        overrides = {"db_path": path, "db_url": url}
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if config is None:
            config = ForestConfig(**overrides)
        elif overrides:
            config = config.model_copy(update=overrides)

        engine = create_forest_engine(config.db_path, url=config.db_url)
        init_db(engine)
        session = create_session_factory(engine)()

        return cls(
            engine=engine,
            session=session,
            message_repo=SqliteMessageRepository(session),
            branch_repo=SqliteBranchRepository(session),
            config=config,
            generator=generator,
        )

    @classmethod
    def from_components(
        cls,
        *,
        session: Session,
        message_repo: SqliteMessageRepository,
        branch_repo: SqliteBranchRepository,
        config: ForestConfig | None = None,
        generator: TextGenerator | None = None,
        engine: Engine | None = None,
    ) -> Forest:
        """Create a ``Forest`` from pre-built components.

        Skips engine/session creation.  Useful for testing and DI.
        """
        return cls(
            engine=engine,
            session=session,
            message_repo=message_repo,
            branch_repo=branch_repo,
            config=config or ForestConfig(),
            generator=generator,
        )

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> ForestConfig:
        """The forest configuration."""
        return self._config

    @property
    def generator(self) -> TextGenerator | None:
        """The configured text generator, if any."""
        return self._generator

    def configure_generator(self, generator: TextGenerator | None) -> None:
        """Set (or clear) the text generator used for summaries and titles."""
        self._generator = generator

    def configure_llm(self, client: LLMClient, *, model: str | None = None) -> None:
        """Use a chat-completion client as the text generator."""
        self._generator = ChatTextGenerator(client, model=model)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        """Commit on success, roll back and re-raise on failure."""
        if self._closed:
            raise BranchTreeError("Forest is closed")
        try:
            yield
        except Exception:
            self._session.rollback()
            raise
        else:
            self._session.commit()

    # ------------------------------------------------------------------
    # Conversations and messages
    # ------------------------------------------------------------------

    def create_conversation(
        self,
        user_id: str,
        *,
        name: str | None = None,
        system_prompt: str | None = None,
    ) -> tuple[BranchInfo, MessageInfo | None]:
        """Create a top-level conversation owned by *user_id*.

        Args:
            user_id: Owner.
            name: Display name; a timestamped label when omitted.
            system_prompt: Optional seed message (role ``system``).

        Returns:
            ``(branch, root_message)``; *root_message* is None without a prompt.
        """
        with self._unit_of_work():
            return branch_ops.create_conversation(
                user_id,
                self._branch_repo,
                self._message_repo,
                name=name,
                system_prompt=system_prompt,
                name_prefix=self._config.conversation_name_prefix,
            )

    def append_message(
        self,
        branch_id: str,
        parent_id: str | None,
        role: MessageRole | str,
        content: str,
    ) -> MessageInfo:
        """Append a message to *branch_id* and make it the head.

        Raises:
            BranchNotFoundError: If the branch does not exist.
            MessageNotFoundError: If *parent_id* does not exist.
        """
        with self._unit_of_work():
            return branch_ops.append_message(
                branch_id, parent_id, role, content, self._message_repo, self._branch_repo
            )

    def extend(
        self,
        branch_id: str,
        content: str,
        *,
        role: MessageRole | str = MessageRole.USER,
    ) -> MessageInfo:
        """Append after the branch head (or the fork point if the branch is empty)."""
        with self._unit_of_work():
            row = branch_ops.require_branch(branch_id, self._branch_repo)
            head = branch_ops.get_head(branch_id, self._message_repo)
            parent_id = head.id if head is not None else row.root_message_id
            return branch_ops.append_message(
                branch_id, parent_id, role, content, self._message_repo, self._branch_repo
            )

    def get_message(self, message_id: str) -> MessageInfo | None:
        """Look up a message by id."""
        with self._unit_of_work():
            row = self._message_repo.get(message_id)
            return message_info(row) if row is not None else None

    def get_branch(self, branch_id: str) -> BranchInfo:
        """Look up a branch by id.

        Raises:
            BranchNotFoundError: If the branch does not exist.
        """
        with self._unit_of_work():
            return branch_info(branch_ops.require_branch(branch_id, self._branch_repo))

    def get_head(self, branch_id: str) -> MessageInfo | None:
        """Head message of a branch, or None if it has no messages."""
        with self._unit_of_work():
            branch_ops.require_branch(branch_id, self._branch_repo)
            return branch_ops.get_head(branch_id, self._message_repo)

    # ------------------------------------------------------------------
    # Lineage and siblings
    # ------------------------------------------------------------------

    def get_history(self, message_id: str) -> list[MessageInfo]:
        """Root-to-node history of *message_id*, crossing fork points.

        Raises:
            MessageNotFoundError: If the message does not exist.
        """
        with self._unit_of_work():
            history = resolve_lineage(
                message_id,
                self._message_repo,
                strategy=self._config.lineage_strategy,
                max_depth=self._config.max_lineage_depth,
            )
        if not history:
            raise MessageNotFoundError(message_id)
        return history

    def format_history(self, message_id: str) -> list[dict[str, str]]:
        """History as ``{role, content}`` pairs for text generation."""
        return format_history_for_generation(self.get_history(message_id))

    def history_with_siblings(self, message_id: str) -> list[HistoryEntry]:
        """History annotated with sibling counts for timeline navigation.

        Raises:
            MessageNotFoundError: If the message does not exist.
        """
        with self._unit_of_work():
            entries = history_with_siblings(
                message_id,
                self._message_repo,
                strategy=self._config.lineage_strategy,
                max_depth=self._config.max_lineage_depth,
            )
        if not entries:
            raise MessageNotFoundError(message_id)
        return entries

    def get_siblings(self, message_id: str) -> SiblingSet:
        """Messages sharing *message_id*'s parent, in any branch."""
        with self._unit_of_work():
            return branch_ops.get_siblings(message_id, self._message_repo)

    def get_children(self, message_id: str) -> list[MessageInfo]:
        """Direct replies to *message_id*, oldest first."""
        with self._unit_of_work():
            return branch_ops.get_children(message_id, self._message_repo)

    def navigate_sibling(self, message_id: str, direction: Direction) -> MessageInfo | None:
        """Head of the previous/next alternate timeline, if any."""
        with self._unit_of_work():
            return navigate_sibling(message_id, direction, self._message_repo)

    # ------------------------------------------------------------------
    # Fork and merge
    # ------------------------------------------------------------------

    def fork(
        self,
        source_message_id: str,
        content: str,
        *,
        user_id: str,
        role: MessageRole | str = MessageRole.USER,
        branch_name: str | None = None,
    ) -> tuple[BranchInfo, MessageInfo]:
        """Start a new branch at *source_message_id*.

        Raises:
            MessageNotFoundError: If the source message does not exist.
        """
        with self._unit_of_work():
            return _fork(
                source_message_id,
                content,
                user_id,
                self._message_repo,
                self._branch_repo,
                role=role,
                branch_name=branch_name,
                name_prefix=self._config.branch_name_prefix,
            )

    def merge(self, branch_id: str) -> MergeResult:
        """Summarize *branch_id* into its parent branch and mark it merged.

        Summary generation is time-bounded and degrades to a placeholder
        summary; structural failures raise and roll back.

        Raises:
            BranchNotFoundError: If the branch does not exist.
            TopLevelMergeError: If the branch is a top-level conversation.
            AlreadyMergedError: If the branch was merged before.
            EmptyBranchError: If the branch has no messages.
            IntegrityViolationError: If no insertion point resolves.
        """
        with self._unit_of_work():
            return merge_branch(
                branch_id,
                self._message_repo,
                self._branch_repo,
                self._generator,
                max_messages=self._config.merge_max_messages,
                max_chars=self._config.merge_max_chars,
                timeout=self._config.llm_timeout,
                strategy=self._config.lineage_strategy,
                max_depth=self._config.max_lineage_depth,
            )

    # ------------------------------------------------------------------
    # Branch listing and structure
    # ------------------------------------------------------------------

    def list_conversations(self, user_id: str, *, with_counts: bool = True) -> list[BranchInfo]:
        """Top-level conversations of *user_id*, newest first."""
        with self._unit_of_work():
            return branch_ops.list_conversations(
                user_id, self._branch_repo, with_counts=with_counts
            )

    def get_tree(
        self, root_branch_id: str, user_id: str, *, with_counts: bool = True
    ) -> list[BranchInfo]:
        """Branches of *user_id* reachable from *root_branch_id*, root first.

        Raises:
            BranchNotFoundError: If the root does not exist for this user.
        """
        with self._unit_of_work():
            return tree_ops.get_tree(
                root_branch_id,
                user_id,
                self._branch_repo,
                self._message_repo,
                with_counts=with_counts,
            )

    def build_tree(self, root_branch_id: str, user_id: str) -> BranchNode:
        """Nested branch hierarchy for navigation views."""
        branches = self.get_tree(root_branch_id, user_id)
        return tree_ops.build_branch_tree(root_branch_id, branches)

    def message_counts(self, branch_ids: Iterable[str]) -> dict[str, int]:
        """Message count per branch id (0 for empty or unknown branches)."""
        with self._unit_of_work():
            return branch_ops.message_counts(branch_ids, self._message_repo)

    def rename_branch(self, branch_id: str, name: str) -> BranchInfo:
        """Rename a branch.

        Raises:
            BranchNotFoundError: If the branch does not exist.
            InvalidBranchNameError: If *name* is empty or malformed.
        """
        with self._unit_of_work():
            return branch_ops.rename_branch(branch_id, name, self._branch_repo)

    def title_branch(self, branch_id: str) -> str:
        """Replace the branch name with a generated title when possible.

        Returns:
            The effective branch name (unchanged on generation failure).
        """
        with self._unit_of_work():
            return title_branch(
                branch_id,
                self._message_repo,
                self._branch_repo,
                self._generator,
                timeout=self._config.llm_timeout,
                max_chars=self._config.title_max_chars,
            )

    def delete_branch(self, branch_id: str) -> list[str]:
        """Delete a branch, its messages and all descendant branches.

        Returns:
            Deleted branch ids, children before parents.

        Raises:
            BranchNotFoundError: If the branch does not exist.
        """
        with self._unit_of_work():
            return branch_ops.delete_branch(branch_id, self._branch_repo, self._message_repo)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the session and dispose the engine."""
        if self._closed:
            return
        self._closed = True
        self._session.close()
        if self._engine is not None:
            self._engine.dispose()

    def __enter__(self) -> Forest:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            return "Forest(closed=True)"
        target = self._config.db_url or self._config.db_path
        return f"Forest(db={target!r})"
