"""Link service for database operations, short code generation and cache upkeep.

Every mutation runs under ``LinkCache.mutation_lock`` and commits its own
transaction so the cache can be updated relative to the commit: entries are
evicted before a deactivation or delete commits (and restored if it fails),
and published only after a create, edit or reactivation has committed.
"""

import secrets
import string

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linkly.core.cache import LinkCache, LinkView
from linkly.core.observability import record_link_operation
from linkly.models.click import Click
from linkly.models.link import Link
from linkly.schemas.link import LinkCreate, LinkUpdate

logger = structlog.get_logger()

# Characters for random short code generation (base62)
SHORT_CODE_CHARS = string.ascii_letters + string.digits
SHORT_CODE_LENGTH = 7
FALLBACK_SHORT_CODE_LENGTH = 9
MAX_GENERATION_ATTEMPTS = 10


class ShortCodeTakenError(ValueError):
    """Raised when a requested short code is already in use."""

    def __init__(self, short_code: str) -> None:
        super().__init__(f"Short code '{short_code}' is already taken")
        self.short_code = short_code


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    """Generate a random short code using base62 characters."""
    return "".join(secrets.choice(SHORT_CODE_CHARS) for _ in range(length))


def to_view(link: Link) -> LinkView:
    return LinkView(
        id=link.id,
        short_code=link.short_code,
        destination_url=link.destination_url,
    )


async def is_short_code_available(session: AsyncSession, short_code: str) -> bool:
    """Check if a short code is available (not already used)."""
    result = await session.execute(
        select(Link.id).where(Link.short_code == short_code)
    )
    return result.scalar_one_or_none() is None


async def generate_unique_short_code(
    session: AsyncSession,
    max_attempts: int = MAX_GENERATION_ATTEMPTS,
) -> str:
    """Generate a short code that is not in use.

    After ``max_attempts`` collisions a longer code is returned unchecked;
    the unique constraint on ``links.short_code`` remains the final guard.
    """
    for _ in range(max_attempts):
        code = generate_short_code()
        if await is_short_code_available(session, code):
            return code
    logger.warning("Short code space crowded, using long code", attempts=max_attempts)
    return generate_short_code(FALLBACK_SHORT_CODE_LENGTH)


async def get_link_by_id(session: AsyncSession, link_id: int) -> Link | None:
    """Get a link by its ID."""
    result = await session.execute(select(Link).where(Link.id == link_id))
    return result.scalar_one_or_none()


async def get_click_count(session: AsyncSession, link_id: int) -> int:
    result = await session.execute(
        select(func.count(Click.id)).where(Click.link_id == link_id)
    )
    return result.scalar() or 0


async def list_links_with_stats(
    session: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    include_inactive: bool = True,
    search: str | None = None,
) -> tuple[list[tuple[Link, int]], int]:
    """Get a page of links, newest first, each with its click count.

    Args:
        session: Database session.
        page: 1-based page number.
        page_size: Links per page.
        include_inactive: Whether deactivated links are listed.
        search: Case-insensitive substring matched against the short code,
            title and destination.

    Returns:
        Tuple of ((link, click_count) pairs, total matching links).
    """
    filters = []
    if not include_inactive:
        filters.append(Link.is_active == True)  # noqa: E712
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                Link.short_code.ilike(pattern),
                Link.title.ilike(pattern),
                Link.destination_url.ilike(pattern),
            )
        )

    count_query = select(func.count(Link.id)).where(*filters)
    total = (await session.execute(count_query)).scalar() or 0

    click_count = func.count(Click.id).label("click_count")
    query = (
        select(Link, click_count)
        .outerjoin(Click, Click.link_id == Link.id)
        .where(*filters)
        .group_by(Link.id)
        .order_by(Link.created_at.desc(), Link.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await session.execute(query)
    return [(link, count) for link, count in result.all()], total


async def _commit_and_publish(session: AsyncSession, cache: LinkCache, link: Link) -> None:
    """Commit, then make the cache reflect ``link``'s committed state.

    The cache is published from the attributes already on ``link``, ahead of
    the refresh.
    """
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    if link.is_active:
        cache.put(to_view(link))
    else:
        cache.remove(link.short_code)
    await session.refresh(link)


async def _evict_and_commit(session: AsyncSession, cache: LinkCache, short_code: str) -> None:
    """Evict ``short_code``, then commit; restore the entry if the commit fails."""
    evicted = cache.remove(short_code)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        if evicted is not None:
            cache.put(evicted)
        raise


async def create_link(
    session: AsyncSession,
    cache: LinkCache,
    link_data: LinkCreate,
) -> Link:
    """Create a new short link and publish it to the cache.

    Raises:
        ShortCodeTakenError: The custom code is already in use.
    """
    async with cache.mutation_lock:
        if link_data.custom_code:
            if not await is_short_code_available(session, link_data.custom_code):
                raise ShortCodeTakenError(link_data.custom_code)
            short_code = link_data.custom_code
        else:
            short_code = await generate_unique_short_code(session)

        link = Link(
            short_code=short_code,
            destination_url=str(link_data.destination_url),
            title=link_data.title,
            description=link_data.description,
            is_active=True,
        )
        session.add(link)
        try:
            await _commit_and_publish(session, cache, link)
        except IntegrityError as e:
            raise ShortCodeTakenError(short_code) from e

    record_link_operation("create")
    logger.info("Link created", link_id=link.id, short_code=link.short_code)
    return link


async def update_link(
    session: AsyncSession,
    cache: LinkCache,
    link: Link,
    link_data: LinkUpdate,
) -> Link:
    """Apply the fields set in ``link_data`` to ``link``."""
    update_data = link_data.model_dump(exclude_unset=True)
    if update_data.get("destination_url") is not None:
        update_data["destination_url"] = str(update_data["destination_url"])
    # Nulls only make sense for the optional text fields
    for field in ("destination_url", "is_active"):
        if field in update_data and update_data[field] is None:
            del update_data[field]

    async with cache.mutation_lock:
        for field, value in update_data.items():
            setattr(link, field, value)

        if update_data.get("is_active") is False:
            await _evict_and_commit(session, cache, link.short_code)
            await session.refresh(link)
        else:
            await _commit_and_publish(session, cache, link)

    record_link_operation("update")
    logger.info("Link updated", link_id=link.id, fields=sorted(update_data))
    return link


async def deactivate_link(session: AsyncSession, cache: LinkCache, link: Link) -> Link:
    """Stop ``link`` from resolving while keeping it and its clicks."""
    async with cache.mutation_lock:
        link.is_active = False
        await _evict_and_commit(session, cache, link.short_code)
        await session.refresh(link)

    record_link_operation("deactivate")
    logger.info("Link deactivated", link_id=link.id, short_code=link.short_code)
    return link


async def reactivate_link(session: AsyncSession, cache: LinkCache, link: Link) -> Link:
    """Make a deactivated link resolve again."""
    async with cache.mutation_lock:
        link.is_active = True
        await _commit_and_publish(session, cache, link)

    record_link_operation("reactivate")
    logger.info("Link reactivated", link_id=link.id, short_code=link.short_code)
    return link


async def delete_link(session: AsyncSession, cache: LinkCache, link: Link) -> None:
    """Delete ``link`` permanently. Its clicks go with it via the foreign key."""
    link_id, short_code = link.id, link.short_code

    async with cache.mutation_lock:
        await session.execute(delete(Link).where(Link.id == link_id))
        await _evict_and_commit(session, cache, short_code)

    record_link_operation("delete")
    logger.info("Link deleted", link_id=link_id, short_code=short_code)


async def warm_cache(session: AsyncSession, cache: LinkCache) -> int:
    """Load every active link into ``cache``, replacing its contents.

    Returns:
        Number of links loaded.
    """
    result = await session.execute(
        select(Link).where(Link.is_active == True)  # noqa: E712
    )
    return cache.warm(to_view(link) for link in result.scalars())
