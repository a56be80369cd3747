"""Content shapes for Storyblok components.

These mirror the types produced by the schema generator. They are static
contracts only; the fetcher never checks payloads against them.
"""

from __future__ import annotations

from typing import Any, Literal

from typing_extensions import NotRequired, TypedDict


class Blok(TypedDict):
    _uid: str
    component: str
    _editable: NotRequired[str]


class StoryblokLink(TypedDict, total=False):
    id: str
    cached_url: str
    url: str
    linktype: Literal["url", "story", "email", "asset"]
    anchor: str
    target: Literal["_self", "_blank"]


class NavigationItem(TypedDict):
    _uid: str
    name: str
    link: StoryblokLink
    component: NotRequired[str]


class FooterColumn(TypedDict):
    _uid: str
    title: str
    links: list[NavigationItem]
    component: NotRequired[str]


class SocialLink(TypedDict):
    _uid: str
    platform: str
    url: str
    icon: NotRequired[str]
    component: NotRequired[str]


class GlobalSettings(Blok, total=False):
    site_title: str
    site_description: str
    site_url: str
    header_nav: list[NavigationItem]
    footer_columns: list[FooterColumn]
    social_links: list[SocialLink]
    copyright_text: str
    logo_url: str
    contact_email: str
    contact_phone: str
    enable_newsletter: bool
    newsletter_api_endpoint: str


class FeatureBlok(Blok, total=False):
    name: str
    headline: str
    description: str
    link: StoryblokLink


class FeatureGridBlok(Blok, total=False):
    headline: str
    subheadline: str
    columns: list[FeatureBlok]


class PageBlok(Blok, total=False):
    title: str
    body: list[dict[str, Any]]
