from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any

DIRECTORY_MARKER = "[Directory]"


@dataclass
class Entry:
    """Represents a single KeePassXC entry as reported by keepassxc-cli."""
    title: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    url: str = ""
    notes: str = ""
    uuid: str = ""
    tags: str = ""
    group: str = ""

    @property
    def is_directory(self) -> bool:
        return self.title == DIRECTORY_MARKER

    @property
    def path(self) -> str:
        """Group path joined with the title, the form keepassxc-cli accepts."""
        if not self.group:
            return self.title
        return f"{self.group}/{self.title}"

    def to_dict(self, include_password: bool = True) -> Dict[str, Any]:
        """Convert the entry to a dictionary for serialization."""
        data = {
            'title': self.title,
            'username': self.username,
            'url': self.url,
            'notes': self.notes,
            'uuid': self.uuid,
            'tags': self.tags,
            'group': self.group,
        }
        if include_password:
            data['password'] = self.password
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Entry':
        """Create an Entry from a dictionary."""
        return cls(
            title=data.get('title', ''),
            username=data.get('username', ''),
            password=data.get('password', ''),
            url=data.get('url', ''),
            notes=data.get('notes', ''),
            uuid=data.get('uuid', ''),
            tags=data.get('tags', ''),
            group=data.get('group', ''),
        )


@dataclass
class Connection:
    """A validated executable/database/secret combination."""
    executable: str
    database_path: Path
    keyfile_path: Optional[Path] = None
    secret: str = field(default="", repr=False)
    credential_path: Optional[Path] = None
    connected: bool = False

    def close(self) -> None:
        """Drop the in-memory secret and mark the connection as closed."""
        self.secret = ""
        self.connected = False


class ListingStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    UNPARSED = "unparsed"


@dataclass
class ListingResult:
    status: ListingStatus
    entries: List[Entry] = field(default_factory=list)
    raw_lines: List[str] = field(default_factory=list)

    @property
    def parse_warning(self) -> bool:
        return self.status is ListingStatus.UNPARSED

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
