"""
Vues immuables de l'état du simulateur destinées aux collaborateurs externes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models.statistics import QueueMetrics
from .notifications import Notification, format_sim_time


@dataclass(frozen=True)
class ServerView:
    id: int
    busy: bool
    client_id: Optional[int]
    remaining_time: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'busy': self.busy,
            'client_id': self.client_id,
            'remaining_time': self.remaining_time,
        }


@dataclass
class Snapshot:
    """
    État instantané du système après un tick.
    """
    simulated_time: float = 0.0
    queue_length: int = 0
    servers: List[ServerView] = field(default_factory=list)
    arrived_count: int = 0
    served_count: int = 0
    metrics: QueueMetrics = field(default_factory=QueueMetrics)
    finished: bool = False

    # Compléments
    state: str = "idle"
    max_queue_length: int = 0
    speed: float = 1.0
    time_to_clear_queue: float = 0.0
    real_elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'simulated_time': self.simulated_time,
            'queue_length': self.queue_length,
            'servers': [s.to_dict() for s in self.servers],
            'arrived_count': self.arrived_count,
            'served_count': self.served_count,
            'metrics': self.metrics.to_dict(),
            'finished': self.finished,
            'state': self.state,
            'max_queue_length': self.max_queue_length,
            'speed': self.speed,
            'time_to_clear_queue': self.time_to_clear_queue,
            'real_elapsed_seconds': self.real_elapsed_seconds,
        }


@dataclass
class TickResult:
    """Résultat d'un tick: l'état et les notifications du lot traité."""
    snapshot: Snapshot
    notifications: List[Notification] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'snapshot': self.snapshot.to_dict(),
            'notifications': [n.to_dict() for n in self.notifications],
        }


@dataclass
class FinalReport:
    """
    Rapport de fin d'exécution.

    Construit au moment où l'horloge franchit le temps de fin; les
    métriques sont figées à leur valeur à cet instant.
    """
    arrived_count: int = 0
    served_count: int = 0
    max_queue_length: int = 0
    avg_waiting_time: float = 0.0
    avg_system_time: float = 0.0
    utilization: float = 0.0
    metrics: QueueMetrics = field(default_factory=QueueMetrics)
    simulated_time: float = 0.0
    real_elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convertit le rapport en dictionnaire."""
        return {
            'arrived_count': self.arrived_count,
            'served_count': self.served_count,
            'max_queue_length': self.max_queue_length,
            'avg_waiting_time': self.avg_waiting_time,
            'avg_system_time': self.avg_system_time,
            'utilization': self.utilization,
            'metrics': self.metrics.to_dict(),
            'simulated_time': self.simulated_time,
            'real_elapsed_seconds': self.real_elapsed_seconds,
        }

    def summary(self) -> str:
        """Résumé textuel de l'exécution."""
        return (
            f"Arrivés: {self.arrived_count}, Servis: {self.served_count}, "
            f"File max: {self.max_queue_length}, "
            f"Attente moyenne: {self.avg_waiting_time:.2f}s, "
            f"Séjour moyen: {self.avg_system_time:.2f}s, "
            f"Utilisation: {self.utilization:.2f}%, "
            f"Temps simulé: {format_sim_time(self.simulated_time)}, "
            f"Temps réel: {self.real_elapsed_seconds:.1f}s"
        )
