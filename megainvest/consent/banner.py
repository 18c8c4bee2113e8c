"""
Banner and preferences presenters.

These hold only UI state (visibility, the working copy of the category
toggles). Every decision goes through the hook, so the banner, the
preferences panel and the footer entry point share one code path.
"""

from dataclasses import dataclass, field
from enum import Enum

from megainvest.consent.constants import CookieCategoryId
from megainvest.consent.hook import CookieConsentHook
from megainvest.consent.types import CookieCategory, CookieConsentPreferences


class CookieConsentAction(str, Enum):
    ACCEPT_ALL = "accept_all"
    REJECT_ALL = "reject_all"
    SAVE_PREFERENCES = "save_preferences"
    SHOW_PREFERENCES = "show_preferences"


@dataclass(frozen=True)
class BannerTexts:
    title: str = "We value your privacy"
    description: str = (
        "We use cookies to enhance your experience and analyze site traffic. "
        "You can manage your preferences or learn more in our"
    )
    accept_all: str = "Accept All"
    reject_all: str = "Reject All"
    manage_preferences: str = "Manage Preferences"
    save_preferences: str = "Save Preferences"
    policy_link: str = "Privacy Policy"
    policy_text: str = "Choose which cookies you want to accept. You can change these settings at any time."


@dataclass(frozen=True)
class ConsentLinks:
    privacy_policy: str = "/privacy"
    cookie_policy: str = "/privacy#cookies"


@dataclass
class PreferencesPanel:
    hook: CookieConsentHook
    categories: list[CookieCategory] = field(default_factory=list)
    is_open: bool = False
    is_saving: bool = False

    def open(self) -> "PreferencesPanel":
        self.categories = self.hook.get_categories()
        self.is_open = True
        return self

    def close(self) -> None:
        self.is_open = False

    def toggle(self, category_id: str) -> bool:
        """Flip a category; required categories stay as they are. Returns the new value."""
        for index, category in enumerate(self.categories):
            if category.id != category_id:
                continue
            if category.required:
                return category.enabled
            self.categories[index] = category.with_enabled(not category.enabled)
            return not category.enabled
        return False

    def selected_preferences(self) -> CookieConsentPreferences:
        enabled = {category.id for category in self.categories if category.enabled}
        return CookieConsentPreferences(
            strictly_necessary=True,
            functional=CookieCategoryId.FUNCTIONAL.value in enabled,
            analytics=CookieCategoryId.ANALYTICS.value in enabled,
            marketing=CookieCategoryId.MARKETING.value in enabled,
        )

    async def save(self) -> CookieConsentPreferences:
        preferences = self.selected_preferences()
        self.is_saving = True
        try:
            await self.hook.save_preferences(preferences)
        finally:
            self.is_saving = False
        self.close()
        return preferences


class ConsentBanner:
    def __init__(
        self,
        hook: CookieConsentHook,
        texts: BannerTexts | None = None,
        links: ConsentLinks | None = None,
    ):
        self.hook = hook
        self.texts = texts or BannerTexts()
        self.links = links or ConsentLinks()
        self.last_action: CookieConsentAction | None = None

    @property
    def visible(self) -> bool:
        return self.hook.state.should_show_banner

    async def accept_all(self) -> None:
        self.last_action = CookieConsentAction.ACCEPT_ALL
        await self.hook.accept_all()

    async def reject_all(self) -> None:
        self.last_action = CookieConsentAction.REJECT_ALL
        await self.hook.reject_all()

    def open_preferences(self) -> PreferencesPanel:
        self.last_action = CookieConsentAction.SHOW_PREFERENCES
        return manage_preferences(self.hook)


def manage_preferences(hook: CookieConsentHook) -> PreferencesPanel:
    """Footer "Manage Preferences" entry point: an opened panel over the current choices."""
    return PreferencesPanel(hook).open()
