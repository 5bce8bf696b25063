"""Configuration and environment settings for the irrenhaus client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_BASE_URL = "https://irrenhaus.dyndns.dk"


@dataclass(frozen=True)
class SiteConfig:
    """Tracker endpoint and transport settings.  `timeout` applies per request."""
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = "irrenhaus-client/1.0"
    encoding: str = "iso-8859-1"  # detail pages are served in latin-1
    timeout: float = 10.0
    max_retries: int = 3
    request_delay: float = 0.0  # seconds between requests, 0 disables throttling
    max_workers: int = 8

    @classmethod
    def from_env(cls) -> SiteConfig:
        return cls(
            base_url=os.getenv("IRRENHAUS_URL", DEFAULT_BASE_URL).rstrip("/"),
            timeout=float(os.getenv("IRRENHAUS_TIMEOUT", "10")),
            max_retries=int(os.getenv("IRRENHAUS_MAX_RETRIES", "3")),
            request_delay=float(os.getenv("IRRENHAUS_REQUEST_DELAY", "0")),
            max_workers=int(os.getenv("IRRENHAUS_MAX_WORKERS", "8")),
        )


@dataclass(frozen=True)
class Credentials:
    username: str = ""
    password: str = ""
    pin: str = ""

    @classmethod
    def from_env(cls) -> Credentials:
        return cls(
            username=os.getenv("IRRENHAUS_USERNAME", ""),
            password=os.getenv("IRRENHAUS_PASSWORD", ""),
            pin=os.getenv("IRRENHAUS_PIN", ""),
        )


@dataclass(frozen=True)
class SessionCookies:
    """Cookies of an existing login.  Lets a caller resume without logging in again."""
    uid: int = 0
    pass_: str = ""
    passhash: str = ""

    @property
    def present(self) -> bool:
        return self.uid != 0 and bool(self.pass_)

    @classmethod
    def from_env(cls) -> SessionCookies:
        return cls(
            uid=int(os.getenv("IRRENHAUS_UID", "0") or 0),
            pass_=os.getenv("IRRENHAUS_PASS", ""),
            passhash=os.getenv("IRRENHAUS_PASSHASH", ""),
        )


@dataclass
class ClientConfig:
    site: SiteConfig = field(default_factory=SiteConfig.from_env)
    credentials: Credentials = field(default_factory=Credentials.from_env)
    cookies: SessionCookies = field(default_factory=SessionCookies.from_env)
