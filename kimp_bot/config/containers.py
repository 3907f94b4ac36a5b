"""
Dependency Injection Containers

아키텍처:
- InfrastructureContainer: 설정 싱글톤 + 외부 클라이언트 (Resource 로 세션 수명 관리)
- ServiceContainer: 워크플로 엔진, 리빌드, 입금 모니터, 자동 판매 매니저, Event Bus
- ApplicationContainer: 최상위 컨테이너 (명령 라우터, 웹훅 앱)

Resource 에 의존하는 provider 는 awaitable 을 반환합니다.

    router = await container.router()
    engine = await container.services.engine()
"""

import asyncio

from dependency_injector import containers, providers

from kimp_bot.application.command_router import CommandRouter
from kimp_bot.application.webhook import create_app
from kimp_bot.common.events import EventBus
from kimp_bot.config.init_infra import (
    init_sheet_store,
    init_telegram_notifier,
    init_upbit_client,
)
from kimp_bot.config.settings import (
    app_settings,
    monitor_settings,
    sheet_settings,
    telegram_settings,
    trading_settings,
    upbit_settings,
    workflow_settings,
)
from kimp_bot.core.trading.deposit_monitor import DepositMonitor
from kimp_bot.core.trading.order_manager import OrderLifecycleManager
from kimp_bot.core.workflow.archive import ArchiveService
from kimp_bot.core.workflow.engine import WorkflowEngine


# ========================================
# 1. Infrastructure Container (인프라 레이어)
# ========================================
class InfrastructureContainer(containers.DeclarativeContainer):
    """인프라 컨테이너

    - Settings: settings.py 싱글톤 주입 (DI)
    - 시트/업비트/텔레그램 클라이언트는 aiohttp 세션을 가진 Resource
    """

    # ===== Settings 주입 (DI) =====
    app_config = providers.Object(app_settings)
    sheet_config = providers.Object(sheet_settings)
    upbit_config = providers.Object(upbit_settings)
    telegram_config = providers.Object(telegram_settings)

    record_store = providers.Resource(init_sheet_store, settings=sheet_config)
    exchange_client = providers.Resource(init_upbit_client, settings=upbit_config)
    notifier = providers.Resource(init_telegram_notifier, settings=telegram_config)


# ========================================
# 2. Service Container (코어 레이어)
# ========================================
class ServiceContainer(containers.DeclarativeContainer):
    """코어 서비스 컨테이너

    - 당일작업 시트 락은 엔진과 리빌드가 공유
    - 모니터/매니저/Event Bus 는 프로세스 단위 싱글톤
    """

    record_store = providers.Dependency()
    exchange_client = providers.Dependency()
    notifier = providers.Dependency()

    sheet_config = providers.Object(sheet_settings)
    upbit_config = providers.Object(upbit_settings)
    monitor_config = providers.Object(monitor_settings)
    trading_config = providers.Object(trading_settings)
    workflow_config = providers.Object(workflow_settings)

    working_sheet_lock = providers.Singleton(asyncio.Lock)
    event_bus = providers.Singleton(EventBus)

    engine = providers.Singleton(
        WorkflowEngine,
        record_store,
        working_sheet=sheet_config.provided.working_sheet,
        rate_sheet=sheet_config.provided.rate_sheet,
        lock=working_sheet_lock,
        issue_code_attempts=workflow_config.provided.issue_code_attempts,
    )

    archive = providers.Singleton(
        ArchiveService,
        store=record_store,
        working_sheet=sheet_config.provided.working_sheet,
        lock=working_sheet_lock,
    )

    deposit_monitor = providers.Singleton(
        DepositMonitor,
        exchange=exchange_client,
        notifier=notifier,
        event_bus=event_bus,
        asset=upbit_config.provided.asset,
        lookback=monitor_config.provided.lookback,
    )

    order_manager = providers.Singleton(
        OrderLifecycleManager,
        exchange=exchange_client,
        notifier=notifier,
        market=upbit_config.provided.market,
        order_timeout_sec=trading_config.provided.order_timeout_sec,
        max_retries=trading_config.provided.max_retries,
    )


# ========================================
# 3. Application Container (최상위)
# ========================================
class ApplicationContainer(containers.DeclarativeContainer):
    """애플리케이션 최상위 컨테이너"""

    infra = providers.Container(InfrastructureContainer)
    services = providers.Container(
        ServiceContainer,
        record_store=infra.record_store,
        exchange_client=infra.exchange_client,
        notifier=infra.notifier,
    )

    router = providers.Singleton(
        CommandRouter,
        engine=services.engine,
        archive=services.archive,
        monitor=services.deposit_monitor,
        order_manager=services.order_manager,
        exchange=infra.exchange_client,
        asset=infra.upbit_config.provided.asset,
    )

    webhook_app = providers.Singleton(
        create_app,
        router=router,
        notifier=infra.notifier,
    )
