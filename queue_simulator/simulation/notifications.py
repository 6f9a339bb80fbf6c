"""
Notifications émises par le moteur.

Le moteur ne connaît ni l'affichage ni le journal: il produit une suite
ordonnée d'enregistrements typés que les abonnés (rendu, log, animation)
consomment sans référence vers l'état interne.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict
import math


class NotificationKind(Enum):
    """Types de notifications."""
    ARRIVAL = "arrival"                    # Un client arrive
    QUEUED = "queued"                      # Aucun serveur libre: mise en file
    SERVICE_START = "service_start"        # Début de service sur un serveur
    SERVICE_END = "service_end"            # Fin de service
    IDLE = "idle"                          # Un serveur redevient libre
    SERVER_ADDED = "server_added"
    SERVER_REMOVED = "server_removed"
    REJECTED = "rejected"                  # Opération refusée (sans erreur)
    STATUS = "status"                      # Démarrage, pause, reprise, reset, vitesse
    FINISHED = "finished"                  # Fin de l'exécution bornée


def format_sim_time(seconds: float) -> str:
    """Formate un temps simulé en "m:ss Min"."""
    seconds = max(0.0, seconds)
    mins = int(math.floor(seconds / 60))
    secs = int(math.floor(seconds % 60))
    return f"{mins}:{secs:02d} Min"


@dataclass
class Notification:
    kind: NotificationKind
    simulated_time: float
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'simulated_time': self.simulated_time,
            'payload': dict(self.payload),
        }

    def describe(self) -> str:
        """Message lisible, utilisé pour le journal."""
        p = self.payload
        t = format_sim_time(self.simulated_time)
        kind = self.kind

        if kind == NotificationKind.ARRIVAL:
            return f"Arrivée client #{p['client_id']} à t={t}"
        elif kind == NotificationKind.QUEUED:
            return f"Client #{p['client_id']} entre en file (longueur: {p['queue_length']})"
        elif kind == NotificationKind.SERVICE_START:
            if p.get('wait_time'):
                return (f"Client #{p['client_id']} commence son service au serveur {p['server_id']} "
                        f"(a attendu {p['wait_time']:.1f}s)")
            return (f"Client #{p['client_id']} commence son service au serveur {p['server_id']} "
                    f"({p['service_time']:.1f}s)")
        elif kind == NotificationKind.SERVICE_END:
            return f"Client #{p['client_id']} termine son service au serveur {p['server_id']} t={t}"
        elif kind == NotificationKind.IDLE:
            return f"Serveur {p['server_id']} au repos"
        elif kind == NotificationKind.SERVER_ADDED:
            return f"Serveur {p['server_id']} ajouté"
        elif kind == NotificationKind.SERVER_REMOVED:
            return f"Serveur {p['server_id']} retiré"
        elif kind == NotificationKind.FINISHED:
            return f"Temps de simulation atteint à t={t}"
        return str(p.get('message', kind.value))


Subscriber = Callable[[Notification], None]
