from dataclasses import dataclass
from typing import Optional


ROLE_ADMIN = "admin"
ROLE_PUBLIC = "public"


@dataclass(frozen=True)
class CallerContext:
    """Identity handed to the core after authorization has already happened."""
    role: str = ROLE_PUBLIC
    user_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


PUBLIC_CALLER = CallerContext()
