"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header, Path
from sqlalchemy.ext.asyncio import AsyncSession

from signposting.db.session import get_db

DbSession = Annotated[AsyncSession, Depends(get_db)]

# Surgery ids are opaque strings issued by the practice system
SurgeryId = Annotated[str, Path(min_length=1, max_length=64)]

# Optional caller identification, recorded on audit events
StaffId = Annotated[str | None, Header(alias="X-Staff-Id", max_length=64)]
RequestId = Annotated[str | None, Header(alias="X-Request-ID", max_length=64)]
