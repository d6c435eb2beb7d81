import datetime
import functools
import logging
import os
import threading
import uuid
from typing import Optional

# Dossier et niveau du journal d'appels, surchargeables par l'environnement
LOGS_DIR = os.getenv("FIELD_LOG_DIR", "logs")

LOG_LEVELS = {"NONE": 0, "BASIC": 1, "DETAILED": 2}
LOG_LEVEL = LOG_LEVELS.get(os.getenv("FIELD_CALL_LOG", "BASIC").upper(), LOG_LEVELS["BASIC"])

# ID unique pour chaque session
SESSION_ID = uuid.uuid4().hex[:8]

now = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
LOG_FILE_PATH = os.path.join(LOGS_DIR, f"field_log_{now}_{SESSION_ID}.txt")

_file_lock = threading.Lock()
_header_written = False


def _write(entry: str) -> None:
    """Append ``entry`` to the session log, creating it on first use."""
    global _header_written
    with _file_lock:
        if not _header_written:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(LOG_FILE_PATH, 'a', encoding='utf-8') as f:
                f.write(f"# Log de session - ID: {SESSION_ID}\n")
                f.write(f"# Niveau de log: {LOG_LEVEL}\n")
                f.write(f"# Début: {now}\n\n")
            _header_written = True
        with open(LOG_FILE_PATH, 'a', encoding='utf-8') as f:
            f.write(entry)


def log_calls(func):
    """Décorateur pour logger les appels de fonctions et mesurer leur temps d'exécution."""
    import time as _time
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if LOG_LEVEL == 0:
            return func(*args, **kwargs)

        timestamp = datetime.datetime.now().isoformat(timespec='seconds')
        _write(f"[{timestamp}] Appel {func.__qualname__} args={args} kwargs={kwargs}\n")

        start_time = _time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = _time.perf_counter() - start_time

        if LOG_LEVEL >= 2:
            _write(
                f"[{timestamp}] Retour {func.__qualname__}: {result}\n"
                f"[{timestamp}] Temps d'exécution {func.__qualname__}: {elapsed:.6f} s\n"
            )

        return result

    return wrapper


_FIELD_LOGGER_NAME = "defence_field"
_FIELD_LOGGER: Optional[logging.Logger] = None


def configure_console_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a console handler to the shared field logger namespace.

    Module loggers (``modules.field.*``) propagate to the root logger, so the
    handler is installed there once and its level refreshed on later calls.
    """

    global _FIELD_LOGGER
    root = logging.getLogger()
    root.setLevel(level)

    if _FIELD_LOGGER is None:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(handler)
        _FIELD_LOGGER = logging.getLogger(_FIELD_LOGGER_NAME)

    for handler in root.handlers:
        handler.setLevel(level)
    return _FIELD_LOGGER
