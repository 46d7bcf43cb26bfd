"""Credential issuer adapters."""

from .jwt import InvalidToken, JwtCredentialIssuer

__all__ = ["InvalidToken", "JwtCredentialIssuer"]
