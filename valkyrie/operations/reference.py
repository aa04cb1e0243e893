"""Role-grouped command reference."""

from typing import TYPE_CHECKING

from valkyrie.models import OperationDefinition, Surface
from valkyrie.services.authorization import RoleTiers

if TYPE_CHECKING:
    from valkyrie.dispatch import OperationContext


def render_help(
    operations: list[OperationDefinition],
    role_tiers: RoleTiers,
    role_tier: int,
) -> str:
    """Render slash operations grouped by the role that unlocks them."""
    by_tier: dict[int, list[OperationDefinition]] = {}
    for operation in operations:
        if operation.surface is not Surface.SLASH:
            continue
        if not 1 <= operation.minimum_role_tier <= len(role_tiers):
            continue
        by_tier.setdefault(operation.minimum_role_tier, []).append(operation)

    lines = ["Here are the available server commands by role:", ""]
    for tier in range(1, len(role_tiers) + 1):
        grouped = by_tier.get(tier)
        if not grouped:
            continue
        lines.append(f"{role_tiers.name_for(tier)}:")
        for operation in sorted(grouped, key=lambda o: o.name):
            lines.append(f"• {operation.usage_line} — {operation.description}")
        lines.append("")

    highest = role_tiers.name_for(role_tier) or "None"
    lines.append(
        f"Your highest recognized role is: {highest}. "
        "You can use all commands listed for your role and any preceding roles."
    )
    return "\n".join(lines)


async def server_help(ctx: "OperationContext") -> None:
    text = render_help(ctx.deps.registry.list_all(), ctx.deps.role_tiers, ctx.role_tier)
    await ctx.reply.send(text, ephemeral=True)


_HELP_DESCRIPTION = "Display the list of available server commands grouped by role."

OPERATIONS = [
    OperationDefinition(
        name="server",
        description=_HELP_DESCRIPTION,
        handler=server_help,
        minimum_role_tier=1,
        category="Help",
    ),
    OperationDefinition(
        name="Server Command Reference",
        description=_HELP_DESCRIPTION,
        handler=server_help,
        minimum_role_tier=1,
        surface=Surface.USER_MENU,
        category="Help",
    ),
]
