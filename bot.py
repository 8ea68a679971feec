import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from config import BOT_TOKEN, DATA_DIR, FONTS_DIR, LOG_LEVEL
from handlers import router
from render import register_fonts
from storage import SessionStore

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def main():
    if not BOT_TOKEN:
        raise RuntimeError("В .env нет BOT_TOKEN")

    fonts = register_fonts(FONTS_DIR)

    DATA_DIR.mkdir(parents=True, exist_ok=True)
    store = SessionStore(DATA_DIR)

    bot = Bot(token=BOT_TOKEN)
    dp = Dispatcher(storage=MemoryStorage())
    dp.include_router(router)

    logger.info("Bot started, data dir: %s", DATA_DIR)
    # прокидываем зависимости в хэндлеры
    await dp.start_polling(bot, store=store, fonts=fonts)


if __name__ == "__main__":
    asyncio.run(main())
