"""
Accumulateur de statistiques en ligne et métriques dérivées.

Les métriques sont calculées à la demande à partir des compteurs courants:
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
│ Métrique              │ Estimation                          │
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
│ Wq (attente moyenne)  │ moyenne des attentes de l'historique│
│ Ws (séjour moyen)     │ moyenne des séjours de l'historique │
│ Lq (nb moyen en file) │ Wq × A / T           (loi de Little)│
│ Ls (nb moyen système) │ Ws × A / T + serveurs occupés       │
│ ρ  (utilisation, %)   │ 100 × B / T, borné à [0, 100]       │
│ P₀ (proxy inactivité) │ max(0, 100 - ρ)                     │
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

A = clients arrivés, B = temps de service cumulé, T = temps observé.
Les dénominateurs nuls sont remplacés par 1.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional
import numpy as np

from .entities import CompletedClient


@dataclass
class QueueMetrics:
    Lq: float = 0.0
    Wq: float = 0.0
    Ls: float = 0.0
    Ws: float = 0.0
    rho: float = 0.0
    p0: float = 100.0

    def to_dict(self) -> dict:
        return {
            'Lq': self.Lq,
            'Wq': self.Wq,
            'Ls': self.Ls,
            'Ws': self.Ws,
            'rho': self.rho,
            'p0': self.p0,
        }


class StatisticsAccumulator:
    """
    Compteurs courants d'une exécution.

    L'historique conserve au plus `history_limit` clients (tous si None);
    les moyennes Wq et Ws portent sur les clients de l'historique.
    """

    def __init__(self, history_limit: Optional[int] = None):
        self.history_limit = history_limit
        self.reset()

    def reset(self) -> None:
        self.arrived_count = 0
        self.served_count = 0
        self.max_queue_length = 0
        self.busy_time = 0.0
        self.observed_time = 0.0
        self.history: Deque[CompletedClient] = deque(maxlen=self.history_limit)
        self.recorded_count = 0

    # ------------------------------------------------------------
    # Enregistrement
    # ------------------------------------------------------------

    def record_arrival(self) -> int:
        """Compte une arrivée et retourne l'identité du nouveau client."""
        self.arrived_count += 1
        return self.arrived_count

    def record_queue_length(self, length: int) -> None:
        if length > self.max_queue_length:
            self.max_queue_length = length

    def record_service_end(self, duration: float) -> None:
        self.served_count += 1
        self.busy_time += duration

    def record_completed(self, record: CompletedClient) -> None:
        self.history.append(record)
        self.recorded_count += 1

    def observe(self, now: float) -> None:
        self.observed_time = now

    # ------------------------------------------------------------
    # Métriques dérivées
    # ------------------------------------------------------------

    @property
    def wait_times(self) -> np.ndarray:
        return np.array([r.wait_time for r in self.history])

    @property
    def system_times(self) -> np.ndarray:
        return np.array([r.system_time for r in self.history])

    @property
    def mean_wait_time(self) -> float:
        if not self.history:
            return 0.0
        return float(self.wait_times.mean())

    @property
    def mean_system_time(self) -> float:
        if not self.history:
            return 0.0
        return float(self.system_times.mean())

    @property
    def utilization(self) -> float:
        """Utilisation ρ en pourcentage, bornée à [0, 100]."""
        T = self.observed_time if self.observed_time > 0 else 1.0
        rho = 100.0 * self.busy_time / T
        return min(100.0, max(0.0, rho))

    def compute_metrics(self, busy_servers: int = 0) -> QueueMetrics:
        """
        Calcule les métriques courantes.

        Args:
            busy_servers: Nombre de serveurs occupés (ajouté à Ls)

        Returns:
            QueueMetrics avec Lq, Wq, Ls, Ws, rho, p0
        """
        metrics = QueueMetrics()
        if self.history:
            T = max(1.0, self.observed_time)
            metrics.Wq = self.mean_wait_time
            metrics.Ws = self.mean_system_time
            metrics.Lq = metrics.Wq * self.arrived_count / T
            metrics.Ls = metrics.Ws * self.arrived_count / T
        metrics.Ls += busy_servers
        metrics.rho = self.utilization
        metrics.p0 = max(0.0, 100.0 - metrics.rho)
        return metrics

    def history_records(self) -> List[dict]:
        return [r.to_dict() for r in self.history]
