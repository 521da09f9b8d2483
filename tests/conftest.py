"""Shared test fixtures for all test modules."""

import pytest

from altai.models.config import Config
from altai.models.page_state import PageState, PublishModule


@pytest.fixture
def config():
    """Config with an API key and test endpoint."""
    return Config(api_key="test-key", endpoint="https://api.test.com/v1")


@pytest.fixture
def blueprint():
    """Blueprint object with display labels for a few fields."""
    return {
        "handle": "auction",
        "tabs": [
            {
                "sections": [
                    {
                        "fields": [
                            {"handle": "title", "display": "Title"},
                            {"handle": "contact_information", "display": "Contact Info"},
                            {"handle": "description", "display": "Description"},
                        ]
                    }
                ]
            }
        ],
    }


@pytest.fixture
def rich_description():
    """Rich-document value with two paragraphs."""
    return [
        {"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]},
        {"type": "paragraph", "content": [{"type": "text", "text": "World"}]},
    ]


@pytest.fixture
def page_state(blueprint, rich_description):
    """Page state for an existing entry in the auctions collection."""
    return PageState(
        path="/cp/collections/auctions/entries/42",
        publish={
            "base": PublishModule(
                values={
                    "id": "42",
                    "title": "Vintage Clock",
                    "slug": "vintage-clock",
                    "published": True,
                    "contact_information": "hi",
                    "description": rich_description,
                    "notes": "",
                },
                blueprint=blueprint,
                meta={"permalink": "https://example.com/auctions/vintage-clock"},
                site="default",
            )
        },
        host_config={
            "user": {"name": "Ada", "email": "ada@example.com", "id": 1},
            "multisiteEnabled": False,
        },
    )
