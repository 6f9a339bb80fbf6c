"""
Contrôleur de simulation à événements discrets G/G/c.

Le contrôleur possède l'horloge simulée et fait avancer la simulation par
lots d'événements. Il est piloté de l'extérieur (driver, API, tests) par
des appels répétés à tick(), qui traite un lot borné puis rend la main.

Cycle de vie:
══════════════════════════════════════════════════════════════

    IDLE ──start()──▶ RUNNING ◀──resume()── PAUSED
                        │    ──pause()───▶
                        │
                        └── horloge ≥ fin ──▶ FINISHED

    reset() depuis n'importe quel état ──▶ IDLE

══════════════════════════════════════════════════════════════

Choix du prochain événement:
- arrivée: à clock.next_arrival_time
- départ: fin de service la plus proche parmi les serveurs occupés
  (à égalité, identité de serveur la plus petite)
Un départ n'est retenu que s'il est strictement antérieur à l'arrivée:
à égalité, l'arrivée passe en premier.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging
import math
import time

from ..config.simulation_config import SimulationConfig
from ..models.entities import Client, CompletedClient, Server
from ..models.server_pool import ServerPool
from ..models.statistics import QueueMetrics, StatisticsAccumulator
from ..models.variates import VariateGenerator
from ..models.wait_queue import WaitQueue
from .notifications import Notification, NotificationKind, Subscriber, format_sim_time
from .snapshot import FinalReport, ServerView, Snapshot, TickResult

log = logging.getLogger(__name__)
log.addHandler(logging.NullHandler())


class SimulationState(Enum):
    """États du contrôleur."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


@dataclass
class Clock:
    """
    Horloge simulée.

    next_arrival_time est toujours strictement supérieur à current_time.
    """
    current_time: float = 0.0
    last_event_time: float = 0.0
    next_arrival_time: float = 0.0
    end_time: Optional[float] = None

    def advance(self, event_time: float) -> None:
        self.last_event_time = self.current_time
        self.current_time = event_time


class SimulationController:
    """
    Moteur de simulation G/G/c piloté par tick().

    Exemple:
        >>> sim = SimulationController(SimulationConfig(seed=42))
        >>> server_id = sim.add_server()
        >>> started = sim.start(duration_seconds=3600, stop_at_limit=True)
        >>> while not sim.tick().snapshot.finished:
        ...     pass
        >>> print(sim.final_report.summary())
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        variates: Optional[VariateGenerator] = None,
        real_clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialise le contrôleur dans l'état IDLE.

        Args:
            config: Configuration (SimulationConfig() par défaut)
            variates: Générateur de durées (construit depuis la config sinon)
            real_clock: Horloge monotone, utilisée uniquement pour le temps réel écoulé

        Raises:
            ValueError: Si la configuration est invalide
        """
        self.config = config if config is not None else SimulationConfig()
        errors = self.config.validate()
        if errors:
            raise ValueError("Configuration invalide: " + "; ".join(errors))

        self.variates = variates if variates is not None else VariateGenerator.from_config(self.config)
        self.real_clock = real_clock
        self.speed = self.config.speed

        self.pool = ServerPool(self.config.initial_servers, self.config.min_servers)
        self.queue = WaitQueue()
        self.stats = StatisticsAccumulator(self.config.history_limit)
        self.clock = Clock()
        self.state = SimulationState.IDLE

        self._subscribers: List[Subscriber] = []
        self._event_buffer: List[Notification] = []
        self._pending: List[Notification] = []
        self._flushing = False
        self._epoch = 0
        self._real_start: Optional[float] = None
        self._real_stop: Optional[float] = None
        self._final_metrics: Optional[QueueMetrics] = None
        self._final_report: Optional[FinalReport] = None

        self.clock.next_arrival_time = self._draw_next_arrival(0.0)

    # ------------------------------------------------------------
    # Abonnés
    # ------------------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> None:
        """Abonne un consommateur aux notifications (appelé entre les événements)."""
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def _emit(self, kind: NotificationKind, **payload: Any) -> None:
        self._event_buffer.append(Notification(kind, self.clock.current_time, payload))

    def _flush(self) -> None:
        """
        Livre les notifications de l'événement courant, une fois celui-ci terminé.

        Une opération appelée par un abonné pendant la livraison n'est livrée
        qu'après les notifications restantes de l'événement en cours.
        """
        if self._flushing:
            return
        self._flushing = True
        try:
            while self._event_buffer:
                buffer, self._event_buffer = self._event_buffer, []
                epoch = self._epoch
                for notification in buffer:
                    # Un reset par un abonné invalide le reste du lot
                    if self._epoch != epoch:
                        break
                    self._deliver(notification)
        finally:
            self._flushing = False

    def _deliver(self, notification: Notification) -> None:
        self._pending.append(notification)
        if notification.kind == NotificationKind.REJECTED:
            log.warning(notification.describe())
        elif notification.kind in (NotificationKind.STATUS, NotificationKind.FINISHED):
            log.info(notification.describe())
        else:
            log.debug(notification.describe())
        for subscriber in list(self._subscribers):
            subscriber(notification)

    def _drain(self) -> List[Notification]:
        pending, self._pending = self._pending, []
        return pending

    # ------------------------------------------------------------
    # Contrôle de l'exécution
    # ------------------------------------------------------------

    def start(self, duration_seconds: Optional[float] = 0.0, stop_at_limit: bool = False) -> bool:
        """
        Démarre (ou relance) la simulation.

        Args:
            duration_seconds: Durée simulée avant arrêt automatique
                (négative ou None ramenée à 0)
            stop_at_limit: Active l'arrêt automatique

        Returns:
            False si la simulation tournait déjà
        """
        if self.state == SimulationState.RUNNING:
            return False

        duration = max(0.0, float(duration_seconds or 0.0))
        now = self.clock.current_time
        if stop_at_limit and duration > 0:
            self.clock.end_time = now + duration
            message = (f"Simulation démarrée à {self.speed}x, arrêt automatique après "
                       f"{format_sim_time(duration)}")
        else:
            self.clock.end_time = None
            if stop_at_limit:
                message = (f"Simulation démarrée à {self.speed}x: arrêt automatique demandé "
                           f"mais durée nulle, pas d'arrêt automatique")
            else:
                message = f"Simulation démarrée à {self.speed}x"

        self.state = SimulationState.RUNNING
        self._real_start = self.real_clock()
        self._real_stop = None
        self._final_metrics = None
        self._emit(
            NotificationKind.STATUS,
            state=self.state.value,
            end_time=self.clock.end_time,
            message=message,
        )
        self._flush()
        return True

    def pause(self) -> bool:
        """RUNNING → PAUSED. Sans effet dans les autres états."""
        if self.state != SimulationState.RUNNING:
            return False
        self.state = SimulationState.PAUSED
        self._emit(NotificationKind.STATUS, state=self.state.value, message="Simulation en pause")
        self._flush()
        return True

    def resume(self) -> bool:
        """PAUSED → RUNNING. Sans effet dans les autres états."""
        if self.state != SimulationState.PAUSED:
            return False
        self.state = SimulationState.RUNNING
        self._emit(NotificationKind.STATUS, state=self.state.value, message="Simulation reprise")
        self._flush()
        return True

    def toggle_pause(self) -> bool:
        """Bascule pause/reprise (bouton unique)."""
        if self.state == SimulationState.RUNNING:
            return self.pause()
        return self.resume()

    def reset(self) -> None:
        """
        Réinitialise entièrement la simulation et revient à IDLE.

        Le pool revient à sa taille minimale (un serveur libre par défaut).
        Tout lot en cours est invalidé: il ne reprendra pas sur l'état effacé.
        """
        self._epoch += 1
        self.state = SimulationState.IDLE
        self.pool.reset(self.config.min_servers)
        self.queue.clear()
        self.stats.reset()
        self.clock = Clock()
        self.clock.next_arrival_time = self._draw_next_arrival(0.0)
        self._real_start = None
        self._real_stop = None
        self._final_metrics = None
        self._final_report = None
        self._event_buffer = []
        self._pending = []
        self._emit(NotificationKind.STATUS, state=self.state.value, message="Système réinitialisé")
        self._flush()

    def set_speed(self, multiplier: float) -> bool:
        """
        Change le multiplicateur de vitesse.

        Hors de [min_speed, max_speed] la valeur est refusée et l'ancienne conservée.
        """
        try:
            value = float(multiplier)
        except (TypeError, ValueError):
            value = math.nan
        if not self.config.min_speed <= value <= self.config.max_speed:
            self._emit(
                NotificationKind.REJECTED,
                operation="set_speed",
                reason="speed_out_of_range",
                value=multiplier,
                message=(f"La vitesse doit être entre {self.config.min_speed}x "
                         f"et {self.config.max_speed}x"),
            )
            self._flush()
            return False
        self.speed = value
        self._emit(NotificationKind.STATUS, state=self.state.value, speed=value,
                   message=f"Vitesse ajustée à {value}x")
        self._flush()
        return True

    @property
    def events_per_batch(self) -> int:
        return max(1, int(math.floor(self.speed * self.config.events_per_speed_unit)))

    # ------------------------------------------------------------
    # Pool de serveurs
    # ------------------------------------------------------------

    def add_server(self) -> int:
        """Ajoute un serveur libre et retourne son identité."""
        server = self.pool.add_server()
        self._emit(NotificationKind.SERVER_ADDED, server_id=server.id, pool_size=len(self.pool))
        self._flush()
        return server.id

    def remove_server(self) -> bool:
        """
        Retire le dernier serveur libre ajouté.

        Refusé (notification REJECTED) s'il ne reste qu'un serveur ou si tous
        sont occupés: aucun client en service n'est évincé.
        """
        if not self.pool.can_shrink:
            self._emit(
                NotificationKind.REJECTED,
                operation="remove_server",
                reason="last_server",
                message="Impossible de retirer le dernier serveur.",
            )
            self._flush()
            return False

        server = self.pool.remove_idle_server()
        if server is None:
            self._emit(
                NotificationKind.REJECTED,
                operation="remove_server",
                reason="all_busy",
                message="Impossible de retirer un serveur: tous sont occupés.",
            )
            self._flush()
            return False

        self._emit(NotificationKind.SERVER_REMOVED, server_id=server.id, pool_size=len(self.pool))
        self._flush()
        return True

    # ------------------------------------------------------------
    # Boucle événementielle
    # ------------------------------------------------------------

    def tick(self) -> TickResult:
        """
        Traite un lot d'événements et retourne l'état et les notifications.

        Sans effet sur la simulation hors de l'état RUNNING. Le lot s'arrête
        dès qu'une pause, un reset ou la fin de l'exécution survient.
        """
        if self.state == SimulationState.RUNNING:
            epoch = self._epoch
            for _ in range(self.events_per_batch):
                if self._epoch != epoch or self.state != SimulationState.RUNNING:
                    break
                self._process_next_event()
                end_time = self.clock.end_time
                if end_time is not None and self.clock.current_time >= end_time:
                    self._finish()
                self._flush()
        return TickResult(snapshot=self.snapshot(), notifications=self._drain())

    def _process_next_event(self) -> None:
        arrival_time = self.clock.next_arrival_time
        server = self.pool.next_completion()
        if server is not None and server.completion_time < arrival_time:
            self.clock.advance(server.completion_time)
            self._handle_departure(server)
        else:
            self.clock.advance(arrival_time)
            self._handle_arrival()

    def _draw_next_arrival(self, now: float) -> float:
        next_time = now + self.variates.next_inter_arrival()
        if next_time <= now:
            next_time = now + self.config.min_arrival_advance
        return next_time

    def _handle_arrival(self) -> None:
        now = self.clock.current_time
        client_id = self.stats.record_arrival()
        client = Client(id=client_id, arrival_time=now, service_time=self.variates.next_service_time())
        self._emit(NotificationKind.ARRIVAL, client_id=client_id)

        server = self.pool.first_idle()
        if server is not None:
            server.assign(client, now)
            self._emit(
                NotificationKind.SERVICE_START,
                client_id=client_id,
                server_id=server.id,
                service_time=client.service_time,
                wait_time=0.0,
            )
        else:
            length = self.queue.push(client)
            self.stats.record_queue_length(length)
            self._emit(NotificationKind.QUEUED, client_id=client_id, queue_length=length)

        self.clock.next_arrival_time = self._draw_next_arrival(now)

    def _handle_departure(self, server: Server) -> None:
        now = self.clock.current_time
        duration = server.service_duration
        self.stats.record_service_end(duration)
        self._emit(
            NotificationKind.SERVICE_END,
            client_id=server.client_id,
            server_id=server.id,
            service_time=duration,
        )

        client = self.queue.pop()
        if client is not None:
            wait_time = now - client.arrival_time
            self.stats.record_completed(CompletedClient(
                id=client.id,
                arrival_time=client.arrival_time,
                wait_time=wait_time,
                system_time=wait_time + client.service_time,
            ))
            server.assign(client, now)
            self._emit(
                NotificationKind.SERVICE_START,
                client_id=client.id,
                server_id=server.id,
                service_time=client.service_time,
                wait_time=wait_time,
                queue_length=len(self.queue),
            )
        else:
            server.release()
            self._emit(NotificationKind.IDLE, server_id=server.id)

        self.stats.observe(now)

    def _finish(self) -> None:
        self.state = SimulationState.FINISHED
        self._real_stop = self.real_clock()
        self._final_metrics = self.stats.compute_metrics(self.pool.busy_count)
        self._final_report = FinalReport(
            arrived_count=self.stats.arrived_count,
            served_count=self.stats.served_count,
            max_queue_length=self.stats.max_queue_length,
            avg_waiting_time=self.stats.mean_wait_time,
            avg_system_time=self.stats.mean_system_time,
            utilization=self.stats.utilization,
            metrics=self._final_metrics,
            simulated_time=self.clock.current_time,
            real_elapsed_seconds=self.real_elapsed_seconds,
        )
        self._emit(
            NotificationKind.FINISHED,
            report=self._final_report.to_dict(),
            message="Résumé final: " + self._final_report.summary(),
        )

    # ------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------

    @property
    def metrics(self) -> QueueMetrics:
        """Métriques courantes (figées une fois l'exécution terminée)."""
        if self.state == SimulationState.FINISHED and self._final_metrics is not None:
            return self._final_metrics
        return self.stats.compute_metrics(self.pool.busy_count)

    @property
    def final_report(self) -> Optional[FinalReport]:
        return self._final_report

    @property
    def real_elapsed_seconds(self) -> float:
        """Temps réel écoulé depuis le dernier démarrage (informatif)."""
        if self._real_start is None:
            return 0.0
        end = self._real_stop if self._real_stop is not None else self.real_clock()
        return max(0.0, end - self._real_start)

    @property
    def time_to_clear_queue(self) -> float:
        """Travail restant (services en cours + file) réparti sur le pool, 0 si la file est vide."""
        if not self.queue:
            return 0.0
        total_work = self.pool.remaining_work(self.clock.current_time) + self.queue.pending_service
        return total_work / max(1, len(self.pool))

    def estimate_real_duration(self, target_clients: Optional[int] = None) -> float:
        """
        Estimation grossière de la durée pour servir `target_clients` clients.

        durée ≈ clients × (moyenne inter-arrivées + moyenne service) / vitesse
        """
        if target_clients is None:
            target_clients = self.config.estimate_clients
        per_client = self.variates.arrival_mean + self.variates.service_mean
        return target_clients * per_client / self.speed

    def snapshot(self) -> Snapshot:
        now = self.clock.current_time
        return Snapshot(
            simulated_time=now,
            queue_length=len(self.queue),
            servers=[
                ServerView(
                    id=s.id,
                    busy=s.busy,
                    client_id=s.client_id,
                    remaining_time=s.remaining_time(now),
                )
                for s in self.pool
            ],
            arrived_count=self.stats.arrived_count,
            served_count=self.stats.served_count,
            metrics=self.metrics,
            finished=self.state == SimulationState.FINISHED,
            state=self.state.value,
            max_queue_length=self.stats.max_queue_length,
            speed=self.speed,
            time_to_clear_queue=self.time_to_clear_queue,
            real_elapsed_seconds=self.real_elapsed_seconds,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'config': self.config.to_dict(),
            'snapshot': self.snapshot().to_dict(),
            'history': self.stats.history_records(),
            'final_report': self._final_report.to_dict() if self._final_report else None,
        }
