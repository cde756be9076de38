"""
Bot Registry Module

Maps requested model names to Coze bots and picks one bot per request.
Built once at startup and read-only afterwards.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from coze2openai.common.errors import ModelNotFoundError
from coze2openai.config import ConfigError, GatewayConfig
from coze2openai.providers.base import BotClient
from coze2openai.providers.coze_client import CozeBot, CozeClient

logger = logging.getLogger(__name__)

# Model key that binds every registered bot; used when no models are configured
DEFAULT_MODEL = ""


class BotRegistry:
    """
    Model to bot registry

    `select` load-balances by picking a random bot among those bound to the model.
    """

    def __init__(
        self,
        bots: dict[str, BotClient],
        models: dict[str, list[str]],
        clients: Sequence[CozeClient] = (),
        chooser: Callable[[Sequence[str]], str] = random.choice,
    ):
        """
        Initialize registry

        Args:
            bots: bot id -> bot
            models: model name -> bot ids, must contain DEFAULT_MODEL
            clients: HTTP clients owned by the registry, closed by `aclose`
            chooser: Picks one bot id from a non-empty list
        """
        self._bots = dict(bots)
        self._models = {name: tuple(ids) for name, ids in models.items()}
        self._clients = tuple(clients)
        self._chooser = chooser

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        timeout: Optional[int] = None,
    ) -> "BotRegistry":
        """
        Build the registry from the config file

        Raises:
            ConfigError: No account declares any bot
        """
        bots: dict[str, BotClient] = {}
        clients: list[CozeClient] = []
        for account in config.accounts:
            if not account.bots:
                continue
            client = CozeClient(host=account.host, token=account.token, timeout=timeout)
            clients.append(client)
            for bot_id in account.bots:
                logger.info("register bot[%s]", bot_id)
                bots[bot_id] = CozeBot(bot_id=bot_id, client=client)

        if not bots:
            raise ConfigError("no valid account")

        # if no model is assigned, every bot serves every request
        models: dict[str, list[str]] = {DEFAULT_MODEL: list(bots)}
        for model, bot_ids in config.models.items():
            valid = []
            for bot_id in bot_ids:
                if bot_id in bots:
                    valid.append(bot_id)
                else:
                    logger.warning("model[%s] bot[%s] is not registered", model, bot_id)
            if not valid:
                logger.warning("model[%s] has no valid bot, skip", model)
                continue
            models[model] = valid
            logger.info("model[%s] bind to bots %s", model, valid)

        if len(models) == 1:
            logger.info("any model bind to bots %s", list(bots))

        return cls(bots, models, clients=clients)

    @property
    def models(self) -> dict[str, tuple[str, ...]]:
        return dict(self._models)

    def select(self, model: str) -> BotClient:
        """
        Pick a bot for the requested model

        With only the default binding every model name is accepted; otherwise the
        model must be configured.

        Raises:
            ModelNotFoundError: Model has no bound bot
        """
        bot_ids = self._models.get(model)
        if len(self._models) == 1:
            bot_ids = self._models[DEFAULT_MODEL]
        elif bot_ids is None:
            raise ModelNotFoundError(model)

        bot = self._bots[self._chooser(bot_ids)]
        logger.debug("model[%s] served by bot[%s]", model, bot.bot_id)
        return bot

    async def aclose(self) -> None:
        for client in self._clients:
            await client.close()


@dataclass(frozen=True)
class Gateway:
    """
    Per-process gateway state

    Constructed at startup and passed into request handling by reference.
    """

    registry: BotRegistry
    # accepted bearer tokens; empty disables authentication
    tokens: frozenset[str] = field(default_factory=frozenset)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.tokens)

    def is_valid_token(self, token: Optional[str]) -> bool:
        return token in self.tokens

    @classmethod
    def from_config(cls, config: GatewayConfig, timeout: Optional[int] = None) -> "Gateway":
        return cls(
            registry=BotRegistry.from_config(config, timeout=timeout),
            tokens=frozenset(config.tokens),
        )
