"""Title and description metadata of the pages."""

from dataclasses import dataclass

from healthle.config import Settings, get_settings
from healthle.core.errors import NotFoundError
from healthle.schemas.settings import PageMetadata
from healthle.services.legal import DISCLAIMER

SITE_NAME = "ヘルスル（Healthle）"
SOCIAL_SHARE_IMAGE = "healthlesocialshare.png"

_SERVICE_DESCRIPTION = (
    "「ヘルスル (Healthle)」は、健康相談と睡眠改善に特化した無料サービスです。"
    "簡単なタップ操作で、自分に合った情報やアドバイスを素早く得られ、健康をサポートします。"
)


@dataclass(frozen=True)
class _PageText:
    title: str
    description: str
    path: str
    og_title: str | None = None
    show_disclaimer: bool = False


PAGES: dict[str, _PageText] = {
    "chat": _PageText(
        title=f"{SITE_NAME}-無料の健康相談サービス",
        description=_SERVICE_DESCRIPTION,
        path="/chat",
        show_disclaimer=True,
    ),
    "home": _PageText(
        title=SITE_NAME,
        description=_SERVICE_DESCRIPTION,
        path="/",
        og_title="「ヘルスル(Healthle)」 健康相談・睡眠改善を24時間いつでも無料で",
    ),
    "questionnaire": _PageText(
        title=f"健康質問票 | {SITE_NAME}",
        description=(
            "ヘルスル（Healthle）の健康質問票ページです。"
            "あなたの健康状態や悩みについて詳しく教えてください。専門家からのアドバイスに役立てます。"
        ),
        path="/questionnaire",
    ),
    "chat-history": _PageText(
        title=f"チャット履歴 | {SITE_NAME}",
        description=(
            "ヘルスル（Healthle）のチャット履歴ページです。"
            "過去の健康相談や睡眠改善のアドバイスを確認できます。"
        ),
        path="/chat-history",
    ),
    "past-consultations": _PageText(
        title=f"過去の相談履歴 | {SITE_NAME}",
        description=(
            "ヘルスル（Healthle）の過去の相談履歴ページです。"
            "これまでの健康相談や睡眠改善のアドバイスを確認できます。"
        ),
        path="/past-consultations",
    ),
    "settings": _PageText(
        title=f"設定 | {SITE_NAME}",
        description=(
            "ヘルスル（Healthle）の設定ページです。"
            "アカウント情報の管理や通知設定、プライバシー設定などをカスタマイズできます。"
        ),
        path="/settings",
    ),
}


def page_metadata(
    name: str,
    concern: str | None = None,
    settings: Settings | None = None,
) -> PageMetadata:
    """
    Metadata of a page by name.

    The questionnaire title carries the concern when one is given.

    Raises:
        NotFoundError: If the page is unknown
    """
    page = PAGES.get(name)
    if page is None:
        raise NotFoundError(f"Unknown page: {name}")

    settings = settings or get_settings()
    title = page.title
    og_title = page.og_title or page.title
    if name == "questionnaire" and concern:
        title = f"{title} - {concern}"
        og_title = title

    return PageMetadata(
        name=name,
        title=title,
        description=page.description,
        og_title=og_title,
        url=f"{settings.site_url.rstrip('/')}{page.path}",
        image_url=f"{settings.storage_public_url}/{SOCIAL_SHARE_IMAGE}",
        disclaimer=DISCLAIMER if page.show_disclaimer else None,
    )
