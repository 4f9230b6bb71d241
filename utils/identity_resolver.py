import logging
from typing import Optional

import httpx

from utils.wallet import short_address

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Traduce una wallet a su username público en el servicio de identidad.

    Best-effort: timeout, 4xx/5xx o un body raro devuelven None y nunca
    frenan el guardado del score. No hay caché; el nombre queda guardado en
    el propio ScoreRecord.

    Respuesta esperada: {"hasUsername": bool, "user": {"username": str}}
    """

    def __init__(self, base_url: str | None, timeout: float = 2.5, client: httpx.Client | None = None):
        self.base_url = base_url or None
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def enabled(self) -> bool:
        return self.base_url is not None

    def resolve(self, player_address: str) -> Optional[str]:
        if not self.enabled:
            return None
        try:
            response = self._client.get(self.base_url, params={"wallet": player_address})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Identity lookup failed for {short_address(player_address)}: {e}")
            return None

        if not isinstance(data, dict) or not data.get("hasUsername"):
            return None
        user = data.get("user")
        username = user.get("username") if isinstance(user, dict) else None
        if not isinstance(username, str) or not username.strip():
            return None
        return username.strip()

    def close(self) -> None:
        self._client.close()
