"""
Message templates for bot replies, keyed by locale.

render() is the only interface the linking core relies on; template storage
can be swapped for anything with the same signature.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATES: dict[str, dict[str, str]] = {
    "en": {
        "welcome": (
            "Welcome {mention}! If you have a Wikimedia account, use the auth command "
            "to link it and get the authenticated role."
        ),
        "welcome_has_auth": "Welcome {mention}! You are authenticated as [{name}](<{user_link}>).",
        "welcome_has_auth_failed": (
            "Welcome {mention}! You are authenticated, but we could not look up your Wikimedia account right now."
        ),
        "auth_start": "{mention}, open this link within {ttl_minutes} minutes to link your Wikimedia account: <{url}>",
        "auth_already_linked": "{mention}, your Discord account is already linked to a Wikimedia account.",
        "unlink_done": "{mention}, your Wikimedia account link has been removed.",
        "unlink_not_linked": "{mention}, your Discord account is not linked to a Wikimedia account.",
    },
    "de": {
        "welcome": (
            "Willkommen {mention}! Wenn du ein Wikimedia-Konto hast, kannst du es mit dem "
            "Auth-Befehl verknüpfen und die Rolle für verifizierte Benutzer erhalten."
        ),
        "welcome_has_auth": "Willkommen {mention}! Du bist als [{name}](<{user_link}>) verifiziert.",
        "welcome_has_auth_failed": (
            "Willkommen {mention}! Du bist verifiziert, aber dein Wikimedia-Konto konnte gerade nicht "
            "abgerufen werden."
        ),
    },
}


class MessageCatalog:
    """Locale-aware str.format templates with fallback to the default locale."""

    def __init__(
        self,
        templates: dict[str, dict[str, str]] | None = None,
        default_locale: str = "en",
    ) -> None:
        self._templates = templates if templates is not None else _DEFAULT_TEMPLATES
        self._default_locale = default_locale

    def render(self, template_name: str, locale: str, variables: dict[str, object]) -> str:
        """
        Render a template.

        Args:
            template_name: Template key, e.g. "welcome_has_auth"
            locale: Community locale; missing templates fall back to the default locale
            variables: Values substituted into the template

        Raises:
            KeyError: If the template exists in neither locale, or a variable is missing
        """
        template = self._templates.get(locale, {}).get(template_name)
        if template is None:
            if locale != self._default_locale:
                logger.debug("No %s template for locale %s, using %s", template_name, locale, self._default_locale)
            template = self._templates[self._default_locale][template_name]
        return template.format_map(variables)
