from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timedelta, timezone

from app.utils.exceptions import RateLimitError


class FloodProtection:
    """Anti-flood protection for content authored by a single user."""

    def __init__(self, model, owner_column, max_items: int = 5, time_window: int = 20, label: str = "post"):
        """
        Initialize flood protection.

        Args:
            model: Mapped class whose rows are counted
            owner_column: Column holding the author's user id
            max_items: Maximum number of rows allowed in time window
            time_window: Time window in minutes
            label: Noun used in the error message
        """
        self.model = model
        self.owner_column = owner_column
        self.max_items = max_items
        self.time_window = time_window
        self.label = label

    async def check_rate_limit(self, user_id: int, db: AsyncSession) -> bool:
        """
        Check if user has exceeded the rate limit.

        Args:
            user_id: ID of the user
            db: Database session

        Returns:
            bool: True if user can create another row

        Raises:
            RateLimitError: If rate limit is exceeded
        """
        now = datetime.now(timezone.utc)
        time_threshold = now - timedelta(minutes=self.time_window)

        query = select(func.count()).select_from(self.model).filter(
            and_(
                self.owner_column == user_id,
                self.model.created_at >= time_threshold
            )
        )

        result = await db.execute(query)
        item_count = result.scalar()

        if item_count >= self.max_items:
            oldest = await db.scalar(
                select(func.min(self.model.created_at)).filter(
                    and_(
                        self.owner_column == user_id,
                        self.model.created_at >= time_threshold
                    )
                )
            )
            if oldest is not None and oldest.tzinfo is None:
                oldest = oldest.replace(tzinfo=timezone.utc)
            reopens_at = (oldest or now) + timedelta(minutes=self.time_window)
            remaining = max(reopens_at - now, timedelta(0))
            minutes = int(remaining.total_seconds() / 60)
            seconds = int(remaining.total_seconds() % 60)

            raise RateLimitError(
                f"Rate limit exceeded. You can create a new {self.label} in {minutes} minutes and {seconds} seconds"
            )

        return True
