"""
Module de génération des variables aléatoires du simulateur.

Les inter-arrivées et les durées de service suivent toutes deux une loi
log-normale paramétrée par sa moyenne et son écart-type (en secondes).

Passage (moyenne, écart-type) → paramètres de la normale sous-jacente:
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
│ Paramètre   │ Formule                                      │
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
│ CV          │ écart-type / moyenne                         │
│ μ           │ ln(moyenne / √(1 + CV²))                     │
│ σ           │ √(ln(1 + CV²))                               │
│ X           │ exp(μ + σ·Z),  Z ~ N(0, 1) (Box-Muller)      │
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

La source uniforme est injectée: en production un générateur numpy,
en test une séquence scriptée pour rendre les exécutions reproductibles.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Tuple
import math
import numpy as np

from ..config.simulation_config import SimulationConfig, SimulationDefaults


class UniformSource(ABC):
    """Capacité de tirage uniforme sur [0, 1)."""

    @abstractmethod
    def next_uniform(self) -> float:
        """Retourne un réel uniforme dans [0, 1)."""


class NumpyUniformSource(UniformSource):
    """
    Source uniforme adossée à un np.random.Generator.

    Sans graine, les exécutions ne sont pas reproductibles.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def next_uniform(self) -> float:
        return float(self.rng.random())


class SequenceUniformSource(UniformSource):
    """
    Source uniforme rejouant une séquence fixée (cyclique).

    Exemple:
        >>> source = SequenceUniformSource([0.25, 0.5])
        >>> source.next_uniform(), source.next_uniform(), source.next_uniform()
        (0.25, 0.5, 0.25)
    """

    def __init__(self, values: Iterable[float]):
        self.values = [float(v) for v in values]
        if not self.values:
            raise ValueError("La séquence uniforme ne peut pas être vide")
        for v in self.values:
            if not 0.0 <= v < 1.0:
                raise ValueError(f"Valeur uniforme hors de [0, 1): {v}")
        self.position = 0

    def next_uniform(self) -> float:
        value = self.values[self.position % len(self.values)]
        self.position += 1
        return value


def lognormal_parameters(mean: float, std: float) -> Tuple[float, float]:
    """
    Calcule (μ, σ) de la normale sous-jacente par appariement des moments.

    Args:
        mean: Moyenne souhaitée de la log-normale (> 0)
        std: Écart-type souhaité (>= 0)

    Returns:
        Tuple (mu, sigma)
    """
    cv = std / mean
    mu = math.log(mean / math.sqrt(1 + cv * cv))
    sigma = math.sqrt(math.log(1 + cv * cv))
    return mu, sigma


class VariateGenerator:
    """
    Générateur de durées log-normales pour les arrivées et le service.

    Chaque tirage consomme exactement deux uniformes (Box-Muller), ce qui
    permet de rejouer une exécution à l'identique à partir de la même
    séquence uniforme.

    Exemple:
        >>> gen = VariateGenerator.from_config(SimulationConfig(seed=42))
        >>> gap = gen.next_inter_arrival()
        >>> service = gen.next_service_time()
    """

    def __init__(
        self,
        arrival_mean: float = SimulationDefaults.ARRIVAL_MEAN,
        arrival_std: float = SimulationDefaults.ARRIVAL_STD,
        service_mean: float = SimulationDefaults.SERVICE_MEAN,
        service_std: float = SimulationDefaults.SERVICE_STD,
        source: Optional[UniformSource] = None,
        min_duration: float = SimulationDefaults.MIN_DURATION,
    ):
        """
        Initialise le générateur.

        Args:
            arrival_mean: Moyenne des inter-arrivées
            arrival_std: Écart-type des inter-arrivées
            service_mean: Moyenne des durées de service
            service_std: Écart-type des durées de service
            source: Source uniforme injectée (numpy non graîné par défaut)
            min_duration: Plancher appliqué à chaque tirage

        Raises:
            ValueError: Si une moyenne est <= 0 ou un écart-type < 0
        """
        self._validate_parameters("arrival", arrival_mean, arrival_std)
        self._validate_parameters("service", service_mean, service_std)
        if min_duration <= 0:
            raise ValueError(f"min_duration doit être > 0, reçu: {min_duration}")
        self.arrival_mean = arrival_mean
        self.arrival_std = arrival_std
        self.service_mean = service_mean
        self.service_std = service_std
        self.min_duration = min_duration
        self.source = source if source is not None else NumpyUniformSource()

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        source: Optional[UniformSource] = None
    ) -> "VariateGenerator":
        """Construit le générateur depuis une configuration (graine incluse)."""
        if source is None:
            source = NumpyUniformSource(config.seed)
        return cls(
            arrival_mean=config.arrival_mean,
            arrival_std=config.arrival_std,
            service_mean=config.service_mean,
            service_std=config.service_std,
            source=source,
            min_duration=config.min_duration,
        )

    def _validate_parameters(self, name: str, mean: float, std: float) -> None:
        if mean is None or mean <= 0:
            raise ValueError(f"{name}_mean doit être > 0, reçu: {mean}")
        if std is None or std < 0:
            raise ValueError(f"{name}_std doit être >= 0, reçu: {std}")

    def standard_normal(self) -> float:
        """Tire Z ~ N(0, 1) par la transformation de Box-Muller."""
        # 1 - u ∈ (0, 1] évite ln(0)
        u1 = 1.0 - self.source.next_uniform()
        u2 = self.source.next_uniform()
        return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

    def sample(self, mean: float, std: float) -> float:
        """
        Tire une valeur log-normale de moyenne et écart-type donnés.

        Returns:
            Durée strictement positive, au moins min_duration
        """
        mu, sigma = lognormal_parameters(mean, std)
        z = self.standard_normal()
        return max(self.min_duration, math.exp(mu + sigma * z))

    def next_inter_arrival(self) -> float:
        """Durée jusqu'à la prochaine arrivée."""
        return self.sample(self.arrival_mean, self.arrival_std)

    def next_service_time(self) -> float:
        """Durée de service d'un nouveau client."""
        return self.sample(self.service_mean, self.service_std)
