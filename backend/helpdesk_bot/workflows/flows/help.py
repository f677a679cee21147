# /helpdesk_bot/workflows/flows/help.py

from helpdesk_bot.config import strings
from helpdesk_bot.models.domain import OutboundMessage
from helpdesk_bot.models.flow import End, StepContext


async def show_help(ctx: StepContext, args) -> End:
    return End(OutboundMessage(text=strings.HELP_MESSAGE))


HELP_STEPS = (show_help,)
