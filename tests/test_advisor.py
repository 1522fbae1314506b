"""Tests for investment suggestions."""

from __future__ import annotations

import logging

import pytest

from simubourse.errors import ValidationFailed
from simubourse.services import actions
from simubourse.services.advisor import describe_portfolio, recommend_investments
from simubourse.services.companies import invest
from simubourse.services.content import (
    FALLBACK_ADVICE,
    InvestmentAdvice,
    Recommendation,
    StaticContentGenerator,
)
from simubourse.services.portfolio import portfolio_summary
from simubourse.services.trading import buy_asset

ARTICLE = (
    "Chipmakers rallied after a large cloud provider doubled its spending plans "
    "for data centres over the next two years."
)


class RecordingGenerator(StaticContentGenerator):
    def __init__(self, advice=None):
        self.advice = advice
        self.calls = []

    def recommend_investments(self, news_article, portfolio, risk_preference):
        self.calls.append((news_article, portfolio, risk_preference))
        if self.advice is None:
            return super().recommend_investments(news_article, portfolio, risk_preference)
        return self.advice


def test_portfolio_is_described_as_weights(
    session_factory, user_factory, asset_factory, company_factory, principal_of, recording_dispatcher
):
    principal = principal_of(user_factory(cash="1000"))
    asset_factory("ACME", price="100")
    buy_asset(session_factory, principal, "ACME", 5, dispatcher=recording_dispatcher)
    company = company_factory(user_factory(), name="Rocket Works")
    invest(session_factory, principal, company.id, 250)

    description = describe_portfolio(portfolio_summary(session_factory, principal))

    assert description == "50% ACME, 25% Rocket Works, 25% cash"


def test_empty_portfolio_description(session_factory, user_factory, principal_of):
    summary = portfolio_summary(session_factory, principal_of(user_factory(cash="0")))

    assert describe_portfolio(summary) == "empty portfolio"


def test_generator_receives_article_portfolio_and_preference(
    session_factory, user_factory, principal_of
):
    generator = RecordingGenerator()

    advice, source = recommend_investments(
        session_factory,
        generator,
        principal_of(user_factory()),
        news_article=f"  {ARTICLE}  ",
        risk_preference=" High ",
    )

    assert source == "generated"
    assert generator.calls == [(ARTICLE, "100% cash", "high")]
    assert {rec.ticker for rec in advice.recommendations} == {"TSLA", "ETH", "BTC"}


def test_recommendations_outside_the_band_are_dropped(
    session_factory, user_factory, principal_of, caplog
):
    caplog.set_level(logging.INFO, logger="simubourse")
    generator = RecordingGenerator(
        InvestmentAdvice(
            recommendations=[
                Recommendation(ticker="XAU", reason="Safe haven.", risk_score=2),
                Recommendation(ticker="BTC", reason="Momentum.", risk_score=9),
            ],
            summary="Mixed picture.",
        )
    )

    advice, _ = recommend_investments(
        session_factory,
        generator,
        principal_of(user_factory()),
        news_article=ARTICLE,
        risk_preference="low",
    )

    assert [rec.ticker for rec in advice.recommendations] == ["XAU"]
    assert advice.summary == "Mixed picture."
    assert "Dropped recommendations outside the risk band" in caplog.text


def test_generator_failure_falls_back(session_factory, user_factory, principal_of, caplog):
    class BrokenGenerator(StaticContentGenerator):
        def recommend_investments(self, news_article, portfolio, risk_preference):
            raise RuntimeError("content service down")

    advice, source = recommend_investments(
        session_factory,
        BrokenGenerator(),
        principal_of(user_factory()),
        news_article=ARTICLE,
        risk_preference="medium",
    )

    assert (advice, source) == (FALLBACK_ADVICE, "fallback")
    assert "Falling back to static advice" in caplog.text


@pytest.mark.parametrize(
    "article, preference, message",
    [
        ("Too short to analyse.", "low", "at least 50 characters"),
        (ARTICLE, "reckless", "low, medium, high"),
    ],
)
def test_invalid_requests_are_rejected_before_generation(
    session_factory, user_factory, principal_of, article, preference, message
):
    generator = RecordingGenerator()

    with pytest.raises(ValidationFailed, match=message):
        recommend_investments(
            session_factory,
            generator,
            principal_of(user_factory()),
            news_article=article,
            risk_preference=preference,
        )

    assert generator.calls == []


def test_advise_action_formats_recommendations(session_factory, user_factory, principal_of):
    result = actions.advise(
        session_factory,
        StaticContentGenerator(),
        principal_of(user_factory()),
        news_article=ARTICLE,
        risk_preference="low",
    )

    lines = result.success.splitlines()
    assert lines[0] == "Offline suggestions for a low risk profile. The article was not analysed."
    assert lines[1] == "  EURUSD   risk  1/10  Major currency pairs move slowly."
    assert len(lines) == 4
