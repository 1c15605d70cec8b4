"""Archive member kinds.

Each collection written to a backup archive is stored as one member whose file
name identifies what it contains. The restore side dispatches on this enum.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .resource_kind import KAFKA, KAFKA_NODE_POOL, KAFKA_TOPIC, KAFKA_USER, SECRET, ResourceKind


class MemberKind(Enum):
    """Known archive members, in canonical backup order.

    UNKNOWN stands for any name outside the closed set; restoring it is
    always an error.
    """

    KAFKA = "kafka.yaml"
    NODE_POOLS = "pools.yaml"
    CA_SECRETS = "ca-secrets.yaml"
    TOPICS = "topics.yaml"
    USERS = "users.yaml"
    USER_SECRETS = "user-secrets.yaml"
    UNKNOWN = ""

    @classmethod
    def parse(cls, filename: str) -> "MemberKind":
        """Map an archive member name to its kind.

        Args:
            filename: Member name from the gzip header

        Returns:
            Matching MemberKind, or MemberKind.UNKNOWN
        """
        if not filename:
            return cls.UNKNOWN
        try:
            return cls(filename)
        except ValueError:
            return cls.UNKNOWN

    @property
    def filename(self) -> str:
        return self.value

    @property
    def comment(self) -> str:
        return _COMMENTS.get(self, "")

    @property
    def resource_kind(self) -> Optional[ResourceKind]:
        return _RESOURCE_KINDS.get(self)

    @property
    def is_list(self) -> bool:
        return self not in (MemberKind.KAFKA, MemberKind.UNKNOWN)


_COMMENTS = {
    MemberKind.KAFKA: "Kafka cluster",
    MemberKind.NODE_POOLS: "List of Kafka Node Pools",
    MemberKind.CA_SECRETS: "List of CA Secrets",
    MemberKind.TOPICS: "List of Kafka Topics",
    MemberKind.USERS: "List of Kafka Users",
    MemberKind.USER_SECRETS: "List of User Secrets",
}

_RESOURCE_KINDS = {
    MemberKind.KAFKA: KAFKA,
    MemberKind.NODE_POOLS: KAFKA_NODE_POOL,
    MemberKind.CA_SECRETS: SECRET,
    MemberKind.TOPICS: KAFKA_TOPIC,
    MemberKind.USERS: KAFKA_USER,
    MemberKind.USER_SECRETS: SECRET,
}
