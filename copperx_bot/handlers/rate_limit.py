from copperx_bot.services.rate_limiter import RateLimitConfig
from copperx_bot.utils.logger import logger


async def allow_attempt(ctx, config: RateLimitConfig) -> bool:
    """Count one attempt against `config` for the current user.

    Returns False, after telling the user how long to wait, when the limit
    is already reached. Blocked attempts are not counted.
    """
    limiter = ctx.services.rate_limiter
    if ctx.user_id is not None:
        config = config.for_user(ctx.user_id)

    if limiter.is_limited(ctx.session, config):
        logger.info(f"Rate limit '{config.key}' reached")
        await ctx.answer()
        await ctx.reply(limiter.limit_message(ctx.session, config))
        return False

    limiter.increment(ctx.session, config)
    return True
