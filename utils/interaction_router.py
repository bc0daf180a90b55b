"""
Interaction routing for the gallery bot.

The router is a stateless dispatch table: slash-command invocations are routed
by ``(command, subcommand)`` and button clicks by the component's custom id.
Handlers never talk to Discord themselves; they return a :class:`ResponsePayload`
and the router sends exactly one response for the interaction. Every exception
raised by a handler is turned into a visible error embed here, so nothing
escapes into discord.py's event loop.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import discord
import structlog

from utils.error_handling import (
    build_error_embed,
    describe_interaction,
    get_error_response,
    log_error,
)
from utils.exceptions import UnrecognizedInteractionError
from utils.logging import RequestContext


@dataclass
class ResponsePayload:
    """What a handler wants sent back for its interaction.

    For component interactions the payload replaces the clicked message, and
    ``view=None`` removes its buttons. An ephemeral payload is always sent as a
    new message, visible only to the clicking user.
    """

    embed: discord.Embed
    view: Optional[discord.ui.View] = None
    ephemeral: bool = False


CommandHandler = Callable[[discord.Interaction, Dict[str, Any]], Awaitable[ResponsePayload]]
ComponentHandler = Callable[[discord.Interaction], Awaitable[ResponsePayload]]

# Interaction types that can be answered with a message
RESPONDABLE_TYPES = frozenset(
    {
        discord.InteractionType.application_command,
        discord.InteractionType.component,
        discord.InteractionType.modal_submit,
    }
)


class InteractionRouter:
    """Dispatch table from command paths and custom ids to handlers."""

    def __init__(self) -> None:
        self._commands: Dict[str, Dict[str, CommandHandler]] = {}
        self._components: Dict[str, ComponentHandler] = {}
        self.logger = structlog.get_logger("interaction_router")

    def add_command(self, command: str, subcommand: str, handler: CommandHandler) -> None:
        self._commands.setdefault(command, {})[subcommand] = handler

    def add_component(self, custom_id: str, handler: ComponentHandler) -> None:
        self._components[custom_id] = handler

    def remove_command(self, command: str) -> None:
        self._commands.pop(command, None)

    def remove_component(self, custom_id: str) -> None:
        self._components.pop(custom_id, None)

    @property
    def command_names(self) -> frozenset[str]:
        return frozenset(self._commands)

    def owns(self, interaction: discord.Interaction) -> bool:
        """Whether this router answers the interaction (known or not)."""
        return interaction.type in RESPONDABLE_TYPES

    async def dispatch(self, interaction: discord.Interaction) -> None:
        """Route an interaction to its handler and send the single response."""
        context = describe_interaction(interaction)
        is_component = interaction.type == discord.InteractionType.component

        async with RequestContext(
            self.logger, "interaction", interaction_id=interaction.id
        ):
            try:
                payload = await self._route(interaction)
            except Exception as error:
                response = get_error_response(error)
                log_error(error, context, response["log_level"])
                payload = ResponsePayload(
                    embed=build_error_embed(error), ephemeral=response["ephemeral"]
                )

            await self._respond(interaction, payload, edit=is_component, context=context)

    async def _route(self, interaction: discord.Interaction) -> ResponsePayload:
        data = interaction.data or {}

        if interaction.type == discord.InteractionType.application_command:
            command_name = data.get("name")
            subcommands = self._commands.get(command_name)
            if subcommands is None:
                raise UnrecognizedInteractionError("command", command_name)

            options = data.get("options") or []
            subcommand = options[0] if options else {}
            if subcommand.get("type") != discord.AppCommandOptionType.subcommand.value:
                raise UnrecognizedInteractionError("subcommand", None)

            handler = subcommands.get(subcommand.get("name"))
            if handler is None:
                raise UnrecognizedInteractionError("subcommand", subcommand.get("name"))

            arguments = {
                option["name"]: option.get("value")
                for option in subcommand.get("options") or []
            }
            self.logger.debug(
                "command_dispatched",
                command=command_name,
                subcommand=subcommand.get("name"),
            )
            return await handler(interaction, arguments)

        if interaction.type == discord.InteractionType.component:
            custom_id = data.get("custom_id")
            handler = self._components.get(custom_id)
            if handler is None:
                raise UnrecognizedInteractionError("component", custom_id)
            self.logger.debug("component_dispatched", custom_id=custom_id)
            return await handler(interaction)

        raise UnrecognizedInteractionError("interaction_type", str(interaction.type))

    async def _respond(
        self,
        interaction: discord.Interaction,
        payload: ResponsePayload,
        edit: bool,
        context: Dict[str, Any],
    ) -> None:
        kwargs: Dict[str, Any] = {"embed": payload.embed}
        try:
            if interaction.response.is_done():
                if payload.view is not None:
                    kwargs["view"] = payload.view
                await interaction.followup.send(ephemeral=payload.ephemeral, **kwargs)
            elif edit and not payload.ephemeral:
                await interaction.response.edit_message(view=payload.view, **kwargs)
            else:
                if payload.view is not None:
                    kwargs["view"] = payload.view
                await interaction.response.send_message(
                    ephemeral=payload.ephemeral, **kwargs
                )
        except discord.NotFound:
            # The interaction token expired before the handler finished
            self.logger.warning("interaction_expired", **context)
        except discord.HTTPException as e:
            self.logger.error(
                "interaction_response_failed",
                status=e.status,
                error=str(e),
                **context,
            )
