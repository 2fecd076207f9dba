from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from image_gallery.auth.models import ProviderConfig
from image_gallery.auth.service import CognitoAuthService
from image_gallery.auth.store import SessionTokenStore
from image_gallery.client.api import GalleryApiClient
from image_gallery.servers.sessions import SessionRegistry
from image_gallery.utils.environment import AppSettings


@dataclass(frozen=True)
class AppContext:
    """
    Objects shared by every request of the web front end.
    Built once in :func:`image_gallery.servers.app.create_app` and stored in
    ``app.state.context``.
    """

    settings: AppSettings
    api_client: GalleryApiClient
    sessions: SessionRegistry
    # transport for the token endpoint; ``None`` uses the ``requests`` module
    http: Any = None

    def provider_config(self) -> ProviderConfig:
        if self.settings.provider_override:
            return ProviderConfig(
                domain=self.settings.cognito_domain or "",
                client_id=self.settings.cognito_client_id or "",
            )
        return self.api_client.get_config()

    def auth_service(self, store: SessionTokenStore) -> CognitoAuthService:
        return CognitoAuthService(
            store,
            config_loader=self.provider_config,
            app_origin=self.settings.app_origin,
            http=self.http,
            timeout=self.settings.timeout,
        )

    def api_for(self, store: SessionTokenStore) -> GalleryApiClient:
        """API client authenticating with the access token held in *store*."""
        return self.api_client.with_token_provider(store.get_access_token)
