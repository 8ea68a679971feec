import json
import logging
from collections import OrderedDict
from pathlib import Path

from session import TagSession

logger = logging.getLogger(__name__)

CACHE_SIZE = 256


class SessionStore:
    """
    Хранит сессию каждого чата в отдельном JSON-файле: <data_dir>/sessions/<chat_id>.json
    В памяти держим только последние cache_size чатов. Хэндлеры сохраняют сессию
    после каждого изменения, так что вытесненную можно прочитать с диска заново.
    """

    def __init__(self, data_dir: Path, cache_size: int = CACHE_SIZE):
        self.dir = Path(data_dir) / "sessions"
        self.cache_size = max(1, cache_size)
        self._cache: "OrderedDict[int, TagSession]" = OrderedDict()

    def _path(self, chat_id: int) -> Path:
        return self.dir / f"{int(chat_id)}.json"

    def _load(self, chat_id: int) -> TagSession:
        path = self._path(chat_id)
        if not path.exists():
            return TagSession()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return TagSession.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Session file %s is unreadable, starting from defaults: %s", path, e)
            return TagSession()

    def _remember(self, chat_id: int, session: TagSession):
        self._cache[chat_id] = session
        self._cache.move_to_end(chat_id)
        while len(self._cache) > self.cache_size:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug("Session %s evicted from cache", evicted)

    def get(self, chat_id: int) -> TagSession:
        session = self._cache.get(chat_id)
        if session is None:
            session = self._load(chat_id)
        self._remember(chat_id, session)
        return session

    def save(self, chat_id: int):
        session = self._cache.get(chat_id)
        if session is None:
            return
        self.dir.mkdir(parents=True, exist_ok=True)
        path = self._path(chat_id)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(session.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)

    def reset(self, chat_id: int) -> TagSession:
        session = TagSession()
        self._remember(chat_id, session)
        self.save(chat_id)
        return session
