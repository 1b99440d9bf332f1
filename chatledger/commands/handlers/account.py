"""Account commands."""

from chatledger.commands.base import BaseCommandHandler, LedgerCapabilities
from chatledger.models.command import CommandContext, CommandResult
from chatledger.models.ledger import normalize_name


MISSING_NAME_MESSAGE = "❌ Missing account name."


class AccountsHandler(BaseCommandHandler):
    name = "accounts"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        accounts = await caps.accounts.get_accounts()
        current = caps.accounts.get_current_account()
        return CommandResult(
            success=True,
            message=self.formatter.accounts(accounts, current),
            data={"accounts": accounts, "current": current},
        )


class AccountAddHandler(BaseCommandHandler):
    name = "account_add"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        name = normalize_name(context.args.get("name"))
        if not name:
            return CommandResult.failure(MISSING_NAME_MESSAGE)
        await caps.accounts.ensure_account_exists(name)
        return CommandResult(success=True, message=f'✅ Account "{name}" created.')


class AccountUseHandler(BaseCommandHandler):
    name = "account_use"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        name = normalize_name(context.args.get("name"))
        if not name:
            return CommandResult.failure(MISSING_NAME_MESSAGE)
        account = await caps.accounts.set_current_account(name)
        return CommandResult(
            success=True,
            message=f'✅ Current account set to "{account}".',
            data={"current": account},
        )
