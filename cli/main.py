"""
CLI entry point for ai-decision.

Usage:
    python -m cli.main <command> [args...]

Or if installed as console script:
    ai-decision <command> [args...]

Request files use the camelCase JSON layout of ``DecisionRequest.from_dict``.
When a request carries no ``context.riskLimits`` the limits are taken from the
``RISK_*`` environment variables.
"""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, List, Optional

import click
from colorama import init as colorama_init
from dotenv import load_dotenv

from ai.errors import DecisionError
from ai.parser import parse_decision_response
from ai.prompt import build_system_prompt, build_user_prompt, performance_tier, tier_directives
from ai.providers import create_provider, normalize_confidence
from ai.providers.factory import SUPPORTED_PROVIDERS
from ai.types import DecisionRequest
from ai.validation import validate_decision
from bot_config import emit_early_env_warnings, load_active_provider_name, load_risk_limits_from_env
from cli.output import print_error, print_result
from display.formatters import build_decision_message, build_sentiment_message
from news.models import Article


# Configure logging for CLI
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)


def _read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print_error(f"{path} 不是合法的 JSON: {exc}")


def load_request(path: str) -> DecisionRequest:
    """Load a decision request, filling missing risk limits from the environment."""
    data = _read_json(path)
    if not isinstance(data, dict):
        print_error(f"{path} 必须是 JSON 对象")
    context_raw = data.get("context") or {}
    if not isinstance(context_raw, dict):
        print_error(f"{path} 中的 context 必须是 JSON 对象")
    try:
        request = DecisionRequest.from_dict(data)
    except (AttributeError, TypeError, ValueError) as exc:
        print_error(f"{path} 字段格式错误: {exc}")
    if not context_raw.get("riskLimits"):
        context = replace(request.context, risk_limits=load_risk_limits_from_env())
        request = replace(request, context=context)
    return request


def load_articles(path: str) -> List[Article]:
    """Load articles from a JSON list or an object with an ``articles`` list."""
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("articles") or []
    if not isinstance(data, list):
        print_error(f"{path} 必须包含新闻列表")
    return [Article.from_dict(item) for item in data if isinstance(item, dict)]


def _build_provider(name: Optional[str], api_key: Optional[str] = None):
    provider = create_provider(name or load_active_provider_name())
    if api_key:
        provider.set_api_key(api_key)
    emit_early_env_warnings()
    return provider


# ═══════════════════════════════════════════════════════════════════
# CLI GROUP AND COMMANDS
# ═══════════════════════════════════════════════════════════════════

@click.group()
@click.option('-v', '--verbose', is_flag=True, help='启用详细日志输出')
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """AI Decision CLI - LLM 交易决策调试工具

    离线渲染提示词、回放模型输出，或调用 LLM 生成一次决策。
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@cli.command()
@click.argument('request_file', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--part',
    type=click.Choice(['system', 'user', 'all']),
    default='all',
    show_default=True,
    help='输出哪一部分提示词',
)
def prompt(request_file: str, part: str) -> None:
    """渲染决策提示词（不访问网络）"""
    request = load_request(request_file)
    sections = []
    if part in ('system', 'all'):
        sections.append(build_system_prompt(request))
    if part in ('user', 'all'):
        sections.append(build_user_prompt(request))
    click.echo("\n\n".join(sections))


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument('sharpe', type=float)
def tier(sharpe: float) -> None:
    """根据夏普比率显示当前表现档位

    示例:
        ai-decision tier 0.35
        ai-decision tier -0.8
    """
    current = performance_tier(sharpe)
    lines = [f"Sharpe {sharpe:.2f} -> {current.value.upper()}"]
    lines.extend(tier_directives(current))
    click.echo("\n".join(lines))


@cli.command()
@click.argument('request_file', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--provider',
    type=click.Choice(sorted(SUPPORTED_PROVIDERS)),
    default=None,
    help='LLM 后端 (默认读取 LLM_PROVIDER)',
)
@click.option('--api-key', default=None, help='覆盖环境变量中的 API Key')
def decide(request_file: str, provider: Optional[str], api_key: Optional[str]) -> None:
    """调用 LLM 生成一次交易决策"""
    request = load_request(request_file)
    try:
        backend = _build_provider(provider, api_key)
        decision = backend.generate_decision(request)
    except DecisionError as exc:
        print_error(str(exc))
        return
    print_result(build_decision_message(decision, symbol=request.symbol))


@cli.command()
@click.argument('response_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('request_file', type=click.Path(exists=True, dir_okay=False))
def check(response_file: str, request_file: str) -> None:
    """回放一次已保存的模型输出：解析并按风控校验"""
    request = load_request(request_file)
    raw = Path(response_file).read_text(encoding="utf-8")
    try:
        decision = parse_decision_response(raw)
        decision = replace(decision, confidence=normalize_confidence(decision.confidence))
        validate_decision(decision, request.risk_limits)
    except DecisionError as exc:
        print_error(str(exc))
        return

    message = build_decision_message(decision, symbol=request.symbol)
    if decision.cot_trace:
        message = f"{message}\n\n🧠 *Reasoning trace*\n{decision.cot_trace}"
    print_result(message)


@cli.command()
@click.argument('articles_file', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--provider',
    type=click.Choice(sorted(SUPPORTED_PROVIDERS)),
    default=None,
    help='LLM 后端 (默认读取 LLM_PROVIDER)',
)
def sentiment(articles_file: str, provider: Optional[str]) -> None:
    """汇总新闻情绪"""
    articles = load_articles(articles_file)
    try:
        backend = _build_provider(provider)
        summary = backend.analyze_news(articles)
    except DecisionError as exc:
        print_error(str(exc))
        return
    print_result(build_sentiment_message(summary))


# ═══════════════════════════════════════════════════════════════════
# MAIN ENTRY POINT
# ═══════════════════════════════════════════════════════════════════

def main() -> None:
    """Main entry point for CLI."""
    colorama_init()
    load_dotenv(override=False)
    cli(obj={})


if __name__ == "__main__":
    main()
