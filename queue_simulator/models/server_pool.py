"""
Pool de serveurs redimensionnable.

Les serveurs sont adressés par identité stable (dictionnaire id → Server,
ordonné par insertion), jamais par position: retirer un serveur ne décale
pas les autres et n'invalide aucun événement en attente.
"""

from typing import Dict, Iterator, Optional

from .entities import Server


class ServerPool:
    """
    Collection dynamique de serveurs, chacun libre ou occupé.

    Les identités sont allouées de façon croissante et jamais réutilisées,
    l'ordre d'insertion coïncide donc avec l'ordre des identités.
    """

    def __init__(self, initial_servers: int = 1, min_size: int = 1):
        if int(min_size) < 1:
            raise ValueError(f"min_size doit être ≥ 1, reçu: {min_size}")
        if int(initial_servers) < min_size:
            raise ValueError(
                f"initial_servers doit être ≥ min_size, reçu: {initial_servers} < {min_size}"
            )
        self.initial_servers = int(initial_servers)
        self.min_size = int(min_size)
        self._servers: Dict[int, Server] = {}
        self._next_id = 1
        self.reset()

    def reset(self, size: Optional[int] = None) -> None:
        """
        Reconstruit le pool: serveurs libres, identités depuis 1.

        Args:
            size: Nombre de serveurs (initial_servers si None, jamais sous min_size)
        """
        if size is None:
            size = self.initial_servers
        self._servers = {}
        self._next_id = 1
        for _ in range(max(int(size), self.min_size)):
            self.add_server()

    def __len__(self) -> int:
        return len(self._servers)

    def __iter__(self) -> Iterator[Server]:
        return iter(self._servers.values())

    def get(self, server_id: int) -> Optional[Server]:
        return self._servers.get(server_id)

    @property
    def busy_count(self) -> int:
        return sum(1 for s in self._servers.values() if s.busy)

    @property
    def can_shrink(self) -> bool:
        return len(self._servers) > self.min_size

    def add_server(self) -> Server:
        """Ajoute un serveur libre avec une nouvelle identité."""
        server = Server(id=self._next_id)
        self._next_id += 1
        self._servers[server.id] = server
        return server

    def remove_idle_server(self) -> Optional[Server]:
        """
        Retire le serveur libre le plus récemment ajouté.

        Returns:
            Le serveur retiré, ou None si le pool est à sa taille minimale
            ou si tous les serveurs sont occupés
        """
        if not self.can_shrink:
            return None
        for server in reversed(list(self._servers.values())):
            if not server.busy:
                del self._servers[server.id]
                return server
        return None

    def first_idle(self) -> Optional[Server]:
        """Premier serveur libre dans l'ordre des identités."""
        for server in self._servers.values():
            if not server.busy:
                return server
        return None

    def next_completion(self) -> Optional[Server]:
        """
        Serveur occupé dont le service se termine le plus tôt.

        À égalité, le serveur d'identité la plus petite l'emporte.
        """
        best: Optional[Server] = None
        for server in self._servers.values():
            if server.completion_time is None:
                continue
            if best is None or server.completion_time < best.completion_time:
                best = server
        return best

    def remaining_work(self, now: float) -> float:
        """Somme des temps de service restants des serveurs occupés."""
        return sum(s.remaining_time(now) or 0.0 for s in self._servers.values())
