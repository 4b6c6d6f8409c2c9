import asyncio
import logging

from aiogram import Bot, Dispatcher
from dotenv import load_dotenv

# .env must be loaded before gcashpay.config builds its settings
load_dotenv()

from gcashpay.bot.handlers import admin_claims as admin_claims_handlers  # noqa: E402
from gcashpay.bot.handlers import pay as pay_handlers  # noqa: E402
from gcashpay.config import settings  # noqa: E402
from gcashpay.logging_config import setup_logging  # noqa: E402
from gcashpay.services.notifications import aclose_bot  # noqa: E402


async def main() -> None:
    setup_logging()

    token = settings.telegram_bot_token
    if not token:
        logging.error("TELEGRAM_BOT_TOKEN is not set. Put it in the .env file.")
        raise SystemExit(1)
    if not settings.uisp_base_url or not settings.uisp_app_key:
        logging.warning("UISP_BASE_URL/UISP_APP_KEY missing; account lookup and approvals will fail")

    bot = Bot(token=token)
    dp = Dispatcher()

    # Admin commands first so the public flow's catch-all text handler never sees them
    dp.include_router(admin_claims_handlers.router)
    dp.include_router(pay_handlers.router)

    logging.info(
        "Starting Telegram bot polling ...",
        extra={"extra": {"payments_file": settings.payments_file, "admins": len(settings.telegram_admin_ids)}},
    )
    await bot.delete_webhook(drop_pending_updates=True)
    try:
        await dp.start_polling(bot)
    finally:
        try:
            await aclose_bot()
        except Exception:
            pass
        await bot.session.close()


def run() -> None:
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass


if __name__ == "__main__":
    run()
