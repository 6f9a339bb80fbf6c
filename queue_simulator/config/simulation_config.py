"""
Configuration globale du simulateur G/G/c.

Ce fichier centralise toutes les variables de configuration
du moteur de simulation: distributions d'arrivée et de service,
taille initiale du pool de serveurs, vitesse et cadence du driver.

Pour modifier la configuration par defaut, editez les valeurs
dans la classe SimulationDefaults ou creez une instance de
SimulationConfig avec vos propres valeurs.
"""

from dataclasses import dataclass
from typing import Optional


class SimulationDefaults:
    """
    Valeurs par defaut pour la configuration du simulateur.

    Les temps sont exprimes en secondes de temps simule.
    """

    # ══════════════════════════════════════════════════════════════
    # ARRIVEES - Loi log-normale des inter-arrivees
    # ══════════════════════════════════════════════════════════════
    ARRIVAL_MEAN: float = 98.6            # Moyenne entre deux arrivees (s)
    ARRIVAL_STD: float = 127.02           # Ecart-type des inter-arrivees (s)

    # ══════════════════════════════════════════════════════════════
    # SERVICE - Loi log-normale des durees de service
    # ══════════════════════════════════════════════════════════════
    SERVICE_MEAN: float = 91.64           # Duree moyenne de service (s)
    SERVICE_STD: float = 43.76            # Ecart-type du service (s)

    # ══════════════════════════════════════════════════════════════
    # GARDE-FOUS - Progression du temps
    # ══════════════════════════════════════════════════════════════
    MIN_DURATION: float = 0.5             # Plancher de toute duree tiree
    MIN_ARRIVAL_ADVANCE: float = 1.0      # Avance forcee de la prochaine arrivee

    # ══════════════════════════════════════════════════════════════
    # SERVEURS - Pool dynamique
    # ══════════════════════════════════════════════════════════════
    INITIAL_SERVERS: int = 1              # Serveurs au demarrage / apres reset
    MIN_SERVERS: int = 1                  # Taille minimale du pool

    # ══════════════════════════════════════════════════════════════
    # VITESSE - Taille des lots et cadence du driver
    # ══════════════════════════════════════════════════════════════
    SPEED: float = 1.0                    # Multiplicateur de vitesse
    MIN_SPEED: float = 0.5
    MAX_SPEED: float = 5.0
    EVENTS_PER_SPEED_UNIT: int = 5        # Evenements par tick a vitesse 1x
    BASE_FRAME_DELAY_MS: float = 100.0    # Delai entre ticks a vitesse 1x
    MIN_FRAME_DELAY_MS: float = 16.0      # Delai minimal entre ticks

    # ══════════════════════════════════════════════════════════════
    # STATISTIQUES
    # ══════════════════════════════════════════════════════════════
    HISTORY_LIMIT: Optional[int] = None   # Clients conserves dans l'historique (None = tous)
    ESTIMATE_CLIENTS: int = 100           # Clients vises pour l'estimation de duree


@dataclass
class SimulationConfig:
    """
    Configuration complete d'une simulation G/G/c.

    Exemple d'utilisation:
        # Configuration par defaut
        config = SimulationConfig()

        # Configuration personnalisee
        config = SimulationConfig(
            arrival_mean=60.0,
            service_mean=90.0,
            initial_servers=2,
            seed=42
        )
    """

    # ══════════════════════════════════════════════════════════════
    # DISTRIBUTIONS
    # ══════════════════════════════════════════════════════════════
    arrival_mean: float = SimulationDefaults.ARRIVAL_MEAN
    arrival_std: float = SimulationDefaults.ARRIVAL_STD
    service_mean: float = SimulationDefaults.SERVICE_MEAN
    service_std: float = SimulationDefaults.SERVICE_STD

    # ══════════════════════════════════════════════════════════════
    # GARDE-FOUS
    # ══════════════════════════════════════════════════════════════
    min_duration: float = SimulationDefaults.MIN_DURATION
    min_arrival_advance: float = SimulationDefaults.MIN_ARRIVAL_ADVANCE

    # ══════════════════════════════════════════════════════════════
    # SERVEURS
    # ══════════════════════════════════════════════════════════════
    initial_servers: int = SimulationDefaults.INITIAL_SERVERS
    min_servers: int = SimulationDefaults.MIN_SERVERS

    # ══════════════════════════════════════════════════════════════
    # VITESSE
    # ══════════════════════════════════════════════════════════════
    speed: float = SimulationDefaults.SPEED
    min_speed: float = SimulationDefaults.MIN_SPEED
    max_speed: float = SimulationDefaults.MAX_SPEED
    events_per_speed_unit: int = SimulationDefaults.EVENTS_PER_SPEED_UNIT
    base_frame_delay_ms: float = SimulationDefaults.BASE_FRAME_DELAY_MS
    min_frame_delay_ms: float = SimulationDefaults.MIN_FRAME_DELAY_MS

    # ══════════════════════════════════════════════════════════════
    # STATISTIQUES / ALEATOIRE
    # ══════════════════════════════════════════════════════════════
    history_limit: Optional[int] = SimulationDefaults.HISTORY_LIMIT
    estimate_clients: int = SimulationDefaults.ESTIMATE_CLIENTS
    seed: Optional[int] = None            # None = non reproductible

    # ══════════════════════════════════════════════════════════════
    # PROPRIETES CALCULEES
    # ══════════════════════════════════════════════════════════════

    @property
    def arrival_rate(self) -> float:
        """Taux d'arrivee λ (clients/seconde)."""
        return 1.0 / self.arrival_mean

    @property
    def service_rate(self) -> float:
        """Taux de service μ d'un serveur (clients/seconde)."""
        return 1.0 / self.service_mean

    @property
    def offered_load(self) -> float:
        """Charge offerte a = λ/μ (en Erlangs)."""
        return self.service_mean / self.arrival_mean

    @property
    def arrival_cv(self) -> float:
        """Coefficient de variation des inter-arrivees."""
        return self.arrival_std / self.arrival_mean

    @property
    def service_cv(self) -> float:
        """Coefficient de variation du service."""
        return self.service_std / self.service_mean

    def validate(self) -> list[str]:
        """
        Valide la configuration et retourne les erreurs.

        Returns:
            Liste des messages d'erreur (vide si valide)
        """
        errors = []

        if self.arrival_mean <= 0:
            errors.append(f"arrival_mean doit etre > 0 (actuel: {self.arrival_mean})")
        if self.arrival_std < 0:
            errors.append(f"arrival_std doit etre >= 0 (actuel: {self.arrival_std})")
        if self.service_mean <= 0:
            errors.append(f"service_mean doit etre > 0 (actuel: {self.service_mean})")
        if self.service_std < 0:
            errors.append(f"service_std doit etre >= 0 (actuel: {self.service_std})")
        if self.min_duration <= 0:
            errors.append(f"min_duration doit etre > 0 (actuel: {self.min_duration})")
        if self.min_arrival_advance <= 0:
            errors.append(f"min_arrival_advance doit etre > 0 (actuel: {self.min_arrival_advance})")
        if self.min_servers < 1:
            errors.append(f"min_servers doit etre >= 1 (actuel: {self.min_servers})")
        if self.initial_servers < self.min_servers:
            errors.append(f"initial_servers ({self.initial_servers}) < min_servers ({self.min_servers})")
        if self.min_speed > self.max_speed:
            errors.append(f"min_speed ({self.min_speed}) > max_speed ({self.max_speed})")
        if not self.min_speed <= self.speed <= self.max_speed:
            errors.append(
                f"speed doit etre entre {self.min_speed} et {self.max_speed} (actuel: {self.speed})"
            )
        if self.events_per_speed_unit < 1:
            errors.append(f"events_per_speed_unit doit etre >= 1 (actuel: {self.events_per_speed_unit})")
        if self.history_limit is not None and self.history_limit < 1:
            errors.append(f"history_limit doit etre >= 1 ou None (actuel: {self.history_limit})")

        return errors

    def to_dict(self) -> dict:
        """Convertit la config en dictionnaire."""
        return {
            # Distributions
            'arrival_mean': self.arrival_mean,
            'arrival_std': self.arrival_std,
            'service_mean': self.service_mean,
            'service_std': self.service_std,
            # Garde-fous
            'min_duration': self.min_duration,
            'min_arrival_advance': self.min_arrival_advance,
            # Serveurs
            'initial_servers': self.initial_servers,
            'min_servers': self.min_servers,
            # Vitesse
            'speed': self.speed,
            'min_speed': self.min_speed,
            'max_speed': self.max_speed,
            'events_per_speed_unit': self.events_per_speed_unit,
            'base_frame_delay_ms': self.base_frame_delay_ms,
            'min_frame_delay_ms': self.min_frame_delay_ms,
            # Statistiques
            'history_limit': self.history_limit,
            'estimate_clients': self.estimate_clients,
            'seed': self.seed,
            # Calculees
            'arrival_rate': self.arrival_rate,
            'service_rate': self.service_rate,
            'offered_load': self.offered_load,
        }

    def summary(self) -> str:
        """Resume textuel de la configuration."""
        return f"""
Configuration Simulateur G/G/c
==============================
Arrivees:  log-normale moyenne={self.arrival_mean}s, ecart-type={self.arrival_std}s (CV={self.arrival_cv:.2f})
Service:   log-normale moyenne={self.service_mean}s, ecart-type={self.service_std}s (CV={self.service_cv:.2f})
Charge:    a = {self.offered_load:.3f} Erlang
Serveurs:  {self.initial_servers} au demarrage (min={self.min_servers})
Vitesse:   {self.speed}x dans [{self.min_speed}, {self.max_speed}]
Graine:    {self.seed if self.seed is not None else 'aucune'}
"""


# Instance globale par defaut (peut etre modifiee)
DEFAULT_SIMULATION_CONFIG = SimulationConfig()
