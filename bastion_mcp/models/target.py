"""Remote target data models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """Username and password for a remote target."""

    user: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class Target:
    """A remote host and the credentials used to reach it.

    Targets are built per call and never persisted.
    """

    address: str
    credentials: Credentials

    @classmethod
    def from_parts(cls, address: str, user: str, secret: str) -> "Target":
        """Build a target from flat address/user/secret values."""
        return cls(address=address, credentials=Credentials(user=user, secret=secret))

    @property
    def user(self) -> str:
        """Login user name."""
        return self.credentials.user
