"""Application wiring: one object owning the store, adapters and services."""

from __future__ import annotations

import logging

from agents.image_analysis import ImageAnalysisAgent
from agents.outfit_recommender import OutfitRecommendationAgent, OutfitSuggestionGenerator
from agents.style_advisor import StyleAdvisorAgent
from auth.accounts import AccountService
from auth.tokens import SessionTokenSigner
from auth.verification import VerificationCodeService
from drobeo_app.clock import Clock, utcnow
from drobeo_app.config import DEFAULT_SESSION_SECRET, AppConfig
from drobeo_app.logging_config import get_logger, log_event
from tools.generative_client import GeminiClient, GenerativeClient
from tools.sms_provider import SmsProvider, build_sms_provider
from tools.wardrobe_store import WardrobeStore, build_store
from tools.wardrobe_tools import WardrobeTools

LOGGER = get_logger(__name__)


class WardrobeApp:
    """Wires together the wardrobe store, generator-backed agents and auth services.

    Collaborators can be injected; tests pass a fake generative client, an
    in-memory SMS provider and a fixed clock.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        store: WardrobeStore | None = None,
        generative_client: GenerativeClient | None = None,
        sms_provider: SmsProvider | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or AppConfig.from_env()
        if self.config.is_production and self.config.session_secret == DEFAULT_SESSION_SECRET:
            raise ValueError("SESSION_SECRET must be set in production")
        self.clock = clock or utcnow

        self.store = store or build_store(self.config, clock=self.clock)
        self.generative_client = generative_client or GeminiClient(
            model=self.config.model,
            api_key=self.config.api_key,
            timeout_seconds=self.config.generation_timeout_seconds,
        )
        self.sms_provider = sms_provider or build_sms_provider(self.config)

        self.image_analysis = ImageAnalysisAgent(self.generative_client)
        self.wardrobe_tools = WardrobeTools(self.store, image_analysis=self.image_analysis)
        self.outfit_recommender = OutfitRecommendationAgent(
            self.store, OutfitSuggestionGenerator(self.generative_client)
        )
        self.style_advisor = StyleAdvisorAgent(self.store, self.generative_client)

        self.verification = VerificationCodeService(
            self.store,
            self.sms_provider,
            ttl_minutes=self.config.verification_ttl_minutes,
            clock=self.clock,
        )
        self.accounts = AccountService(self.store, self.verification)
        self.tokens = SessionTokenSigner(
            self.config.session_secret, self.config.session_ttl_seconds, clock=self.clock
        )
        log_event(
            LOGGER,
            logging.INFO,
            "app_initialised",
            environment=self.config.environment or "development",
            storage_backend=self.config.storage_backend,
            sms_backend=self.config.sms_backend,
        )


__all__ = ["WardrobeApp"]
