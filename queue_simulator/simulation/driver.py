"""
Driver externe: cadence les appels à tick().

Le contrôleur ne se replanifie jamais lui-même; c'est ce driver qui
décide quand rappeler tick() et combien de temps attendre entre deux
lots (délai = max(16 ms, 100 ms / vitesse) par défaut).
"""

from typing import Callable, Optional
import time

from .controller import SimulationController, SimulationState
from .snapshot import TickResult


class SimulationDriver:
    """
    Boucle de pilotage synchrone d'un SimulationController.

    Exemple:
        >>> driver = SimulationDriver(SimulationController(), sleep=lambda s: None)
        >>> result = driver.run_to_completion(duration_seconds=600)
        >>> result.snapshot.finished
        True
    """

    def __init__(
        self,
        controller: SimulationController,
        sleep: Callable[[float], None] = time.sleep,
        on_tick: Optional[Callable[[TickResult], None]] = None,
    ):
        self.controller = controller
        self.sleep = sleep
        self.on_tick = on_tick
        self.ticks = 0
        self.last_result: Optional[TickResult] = None

    @property
    def frame_delay_seconds(self) -> float:
        config = self.controller.config
        delay_ms = max(config.min_frame_delay_ms, config.base_frame_delay_ms / self.controller.speed)
        return delay_ms / 1000.0

    def step(self) -> TickResult:
        """Un tick, suivi du rappel on_tick."""
        result = self.controller.tick()
        self.ticks += 1
        self.last_result = result
        if self.on_tick is not None:
            self.on_tick(result)
        return result

    def run(self, max_ticks: Optional[int] = None) -> Optional[TickResult]:
        """
        Enchaîne les ticks tant que le contrôleur est RUNNING.

        Sans max_ticks, une exécution non bornée ne s'arrête que sur une
        pause ou un reset déclenché par on_tick ou un abonné.

        Returns:
            Le dernier TickResult (None si aucun tick n'a été fait)
        """
        result = None
        count = 0
        while self.controller.state == SimulationState.RUNNING:
            if max_ticks is not None and count >= max_ticks:
                break
            result = self.step()
            count += 1
            if self.controller.state == SimulationState.RUNNING:
                self.sleep(self.frame_delay_seconds)
        return result

    def run_to_completion(
        self,
        duration_seconds: float,
        max_ticks: Optional[int] = None
    ) -> Optional[TickResult]:
        """
        Lance une exécution bornée et la pilote jusqu'à FINISHED.

        Raises:
            ValueError: Si la durée n'est pas strictement positive, ou si une
                exécution non bornée tourne déjà
        """
        if duration_seconds is None or duration_seconds <= 0:
            raise ValueError(f"duration_seconds doit être > 0, reçu: {duration_seconds}")
        started = self.controller.start(duration_seconds, stop_at_limit=True)
        if not started and self.controller.clock.end_time is None and max_ticks is None:
            raise ValueError("Une exécution non bornée est déjà en cours")
        return self.run(max_ticks=max_ticks)
