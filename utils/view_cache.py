import logging
import threading
import time

from config import VIEW_CACHE_TTL_SECONDS

# Cache mémoire des vues (listes) indexé par chemin puis par clé (ex: utilisateur).
# Les actions d'écriture invalident le chemin concerné.
_views: dict[str, dict[object, tuple[float, object]]] = {}
_lock = threading.Lock()


def get_view(path: str, key):
    """Retourne la vue en cache ou None si absente ou expirée."""
    with _lock:
        views = _views.get(path, {})
        entry = views.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if time.monotonic() - stored_at > VIEW_CACHE_TTL_SECONDS:
            # Entrée expirée: on la retire pour ne pas accumuler les clés
            del views[key]
            return None
        return value


def set_view(path: str, key, value):
    with _lock:
        _views.setdefault(path, {})[key] = (time.monotonic(), value)


def invalidate(path: str):
    """Invalide toutes les vues du chemin donné (ex: "/enquiries")."""
    with _lock:
        dropped = _views.pop(path, None)
    if dropped:
        logging.info(f"Cache invalidé pour {path} ({len(dropped)} vue(s))")


def clear():
    with _lock:
        _views.clear()
