"""
File d'attente FIFO des clients qui attendent un serveur libre.
"""

from collections import deque
from typing import Deque, Iterator, Optional

from .entities import Client


class WaitQueue:
    """
    File FIFO: l'ordre d'insertion est l'ordre d'arrivée.

    Un client présent dans la file n'est jamais affecté à un serveur.
    """

    def __init__(self):
        self._clients: Deque[Client] = deque()

    def __len__(self) -> int:
        return len(self._clients)

    def __iter__(self) -> Iterator[Client]:
        return iter(self._clients)

    def __bool__(self) -> bool:
        return bool(self._clients)

    def push(self, client: Client) -> int:
        """Ajoute un client en queue de file et retourne la nouvelle longueur."""
        self._clients.append(client)
        return len(self._clients)

    def pop(self) -> Optional[Client]:
        """Retire le client en tête de file (None si vide)."""
        if not self._clients:
            return None
        return self._clients.popleft()

    def clear(self) -> None:
        self._clients.clear()

    @property
    def pending_service(self) -> float:
        """Somme des durées de service pré-tirées des clients en attente."""
        return sum(c.service_time for c in self._clients)
