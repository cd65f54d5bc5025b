from typing import Any, List


class UserStore:
    """Stockage en mémoire des utilisateurs, ordre d'insertion conservé."""

    def __init__(self):
        self._users: List[Any] = []

    def append(self, record: Any) -> None:
        # Aucune validation: la valeur est stockée telle quelle
        self._users.append(record)

    def list(self) -> List[Any]:
        return list(self._users)

    def clear(self) -> None:
        self._users.clear()

    def __len__(self) -> int:
        return len(self._users)
