"""
Centralized prompts used by the report pipeline.

Templates carry `PROJECT_PLACEHOLDER` wherever the project name belongs; the
segment requester substitutes it with plain string replacement so the JSON
braces in the templates never need escaping.
"""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

from domain.models import (
    CoreSegment,
    CryptoRankReport,
    FundingSegment,
    OutlookSegment,
    QuickAnalysis,
)

from .segments import PROJECT_PLACEHOLDER, Segment

RESEARCH_SYSTEM_PROMPT: str = (
    "You are an expert crypto airdrop researcher applying the AZ9 methodology. "
    "You judge whether a project is early and how strong its airdrop potential is using five signals: "
    "(1) new/early project, (2) fit with a hot narrative such as restaking, L2, AI, modular or ZK, "
    "(3) smart money: tier-1 VC backing or top KOLs following, (4) upcoming events such as testnet, mainnet "
    "or major upgrades, (5) a clear on-chain interaction path (bridge, swap, stake). "
    "Base every statement on the web search results you are given. "
    "Respond ONLY with strictly valid JSON. No markdown, no commentary outside the JSON."
)

FUNDING_SYSTEM_PROMPT: str = (
    "You are a crypto venture analyst in the style of CryptoRank. You reconstruct fundraising history "
    "(round type, date, token price, amount raised, valuation, ROI, investors, unlock terms) and judge "
    "whether the current valuation is justified. Write 'Undisclosed' for anything the sources do not state. "
    "Respond ONLY with strictly valid JSON."
)

BATCH_SYSTEM_PROMPT: str = "Return ONLY a raw JSON array. No markdown. Start with [ and end with ]."

CORE_TEMPLATE: str = f"""Research the crypto project "{PROJECT_PLACEHOLDER}".
Cover what it does, who it is for, its official links and its technology.
Return a JSON object with exactly these keys:
{{
  "tldr": {{"summary": "string", "problemSolved": "string", "backers": "string",
            "status": "token / airdrop status", "quickVerdict": "Low | Medium | High"}},
  "overview": {{"category": "string", "targetAudience": "string",
                "socials": {{"website": "url", "twitter": "url", "docs": "url"}}}},
  "tech": {{"chain": "string", "architecture": "string", "differentiation": "string"}},
  "sources": [{{"title": "string", "uri": "url"}}]
}}"""

FUNDING_TEMPLATE: str = f"""Research the funding and token model of the crypto project "{PROJECT_PLACEHOLDER}".
Return a JSON object with exactly these keys:
{{
  "funding": {{"rounds": [{{"stage": "Pre-seed | Seed | Series A ...", "amount": "string",
                           "investors": ["string"], "date": "string"}}],
               "keyBackers": ["tier-1 VCs"], "hasTier1Backing": true}},
  "tokenomics": {{"tokenStatus": "Live | Unreleased | Confirmed", "ticker": "string", "supply": "string",
                  "airdropPrediction": "how to farm, snapshot hints"}},
  "sources": [{{"title": "string", "uri": "url"}}]
}}"""

OUTLOOK_TEMPLATE: str = f"""Assess traction, market position and airdrop outlook for the crypto project "{PROJECT_PLACEHOLDER}".
Return a JSON object with exactly these keys:
{{
  "metrics": {{"tvl": "string", "users": "DAU / WAU", "growthComment": "string"}},
  "sentiment": {{"twitterVibe": "Positive | Neutral | Negative", "narrativeFit": "string"}},
  "competitors": ["project names"],
  "risks": ["string"],
  "verdict": {{"score": 1-10, "finalThoughts": "string", "actionPlan": ["ordered farming steps"]}},
  "sources": [{{"title": "string", "uri": "url"}}]
}}"""

QUICK_TEMPLATE: str = f"""Analyze the crypto project "{PROJECT_PLACEHOLDER}" for airdrop potential using the AZ9 methodology.
Look for its recent funding, current development stage (testnet / mainnet) and active campaigns (Galxe, Zealy, points).
Return ONLY a JSON object:
{{
  "projectName": "string",
  "narrative": "string",
  "score": 1-10,
  "signals": {{"smartMoney": "string", "community": "string", "stage": "string"}},
  "verdict": "string",
  "strategy": ["string"]
}}"""

FUNDING_REPORT_TEMPLATE: str = f"""Build a full funding report for the crypto project "{PROJECT_PLACEHOLDER}".
Return ONLY a JSON object:
{{
  "projectName": "string", "ticker": "string", "category": "string", "totalRaised": "string",
  "rounds": [{{"type": "Seed | Private | Strategic | Public/IDO", "date": "string", "price": "string",
              "raised": "string", "valuation": "string", "roi": "string", "investors": ["string"],
              "unlockTerms": "string"}}],
  "tokenomics": {{"initialSupply": "string", "totalSupply": "string", "initialMarketCap": "string",
                  "fullyDilutedValuation": "string"}},
  "investorAnalysis": {{"tier1Count": 0, "leadInvestors": ["string"], "commentary": "string"}},
  "investmentVerdict": {{"rating": "Undervalued | Fair Value | Overvalued | High Risk",
                         "riskLevel": "Low | Medium | High | Degen", "summary": "2-3 sentences",
                         "pros": ["string"], "cons": ["string"]}}
}}"""

CORE_SEGMENT = Segment(
    name="core",
    template=CORE_TEMPLATE,
    system_instruction=RESEARCH_SYSTEM_PROMPT,
    search_hint="crypto project official website overview technology",
    model=CoreSegment,
)

FUNDING_SEGMENT = Segment(
    name="funding",
    template=FUNDING_TEMPLATE,
    system_instruction=RESEARCH_SYSTEM_PROMPT,
    search_hint="crypto funding round investors tokenomics airdrop",
    model=FundingSegment,
)

OUTLOOK_SEGMENT = Segment(
    name="outlook",
    template=OUTLOOK_TEMPLATE,
    system_instruction=RESEARCH_SYSTEM_PROMPT,
    search_hint="crypto TVL users sentiment competitors risks",
    model=OutlookSegment,
)

FULL_ANALYSIS_SEGMENTS: Tuple[Segment, ...] = (CORE_SEGMENT, FUNDING_SEGMENT, OUTLOOK_SEGMENT)

QUICK_ANALYSIS_SEGMENT = Segment(
    name="quick_analysis",
    template=QUICK_TEMPLATE,
    system_instruction=RESEARCH_SYSTEM_PROMPT,
    search_hint="crypto airdrop testnet funding points campaign",
    model=QuickAnalysis,
)

FUNDING_REPORT_SEGMENT = Segment(
    name="funding_report",
    template=FUNDING_REPORT_TEMPLATE,
    system_instruction=FUNDING_SYSTEM_PROMPT,
    search_hint="crypto fundraising rounds valuation vesting unlock cryptorank",
    model=CryptoRankReport,
)


def batch_evaluation_prompt(candidates: Sequence[Dict[str, str]]) -> str:
    """Return the single combined prompt that scores every candidate on the AZ9 checklist."""

    listing = ", ".join(f"{c['name']} ({c.get('context', '')})" for c in candidates)
    return (
        "I have a list of potential crypto projects. Filter them based on the AZ9 airdrop checklist:\n"
        "1. Is it a new / early project?\n"
        "2. Is it in a hot narrative (L2, restaking, AI, modular)?\n"
        "3. Is there smart money or high potential?\n\n"
        f"List: {listing}\n\n"
        "Return a JSON array where each object contains:\n"
        "- name: string\n"
        "- isMatch: boolean (true if it meets more than 2 checklist criteria)\n"
        "- score: number (1-10)\n"
        "- reason: string (short explanation based on the checklist)\n\n"
        "Return ONLY a valid JSON array."
    )
