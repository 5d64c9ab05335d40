import typing as t

from ninja_extra import ControllerBase

from accounts.models import CampusUser


class UserAwareController(ControllerBase):
    def user(self) -> CampusUser:
        """The authenticated user of this request."""
        return t.cast(CampusUser, self.context.request.user)  # type: ignore[union-attr]
