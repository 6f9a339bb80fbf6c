"""
Entités manipulées par le moteur: clients et serveurs.

- Client: créé à l'arrivée, sa durée de service est tirée une seule fois
  au moment de son admission (service immédiat ou mise en file).
- Server: identité stable, qui survit aux redimensionnements du pool.
- CompletedClient: trace d'un client passé par la file (attente, séjour).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Client:
    """Client en cours dans le système (en file ou en service)."""
    id: int
    arrival_time: float
    service_time: float


@dataclass
class CompletedClient:
    """Client sorti de la file, avec ses temps d'attente et de séjour."""
    id: int
    arrival_time: float
    wait_time: float
    system_time: float

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'arrival_time': self.arrival_time,
            'wait_time': self.wait_time,
            'system_time': self.system_time,
        }


@dataclass
class Server:
    """
    Serveur du pool.

    Invariant: busy ⇔ client_id présent ⇔ completion_time présent
    et strictement supérieur à service_start.
    """
    id: int
    busy: bool = False
    client_id: Optional[int] = None
    service_start: float = 0.0
    completion_time: Optional[float] = None

    def assign(self, client: Client, now: float) -> None:
        """Démarre le service de `client` à l'instant `now`."""
        self.busy = True
        self.client_id = client.id
        self.service_start = now
        self.completion_time = now + client.service_time

    def release(self) -> None:
        """Remet le serveur au repos."""
        self.busy = False
        self.client_id = None
        self.completion_time = None

    @property
    def service_duration(self) -> float:
        """Durée de service réalisée (0 si inactif)."""
        if self.completion_time is None:
            return 0.0
        return max(0.0, self.completion_time - self.service_start)

    def remaining_time(self, now: float) -> Optional[float]:
        """Temps restant avant la fin du service (None si inactif)."""
        if self.completion_time is None:
            return None
        return max(0.0, self.completion_time - now)

    @property
    def is_consistent(self) -> bool:
        idle = not self.busy and self.client_id is None and self.completion_time is None
        serving = (
            self.busy
            and self.client_id is not None
            and self.completion_time is not None
            and self.completion_time > self.service_start
        )
        return idle or serving
