"""
Реестр сценариев.

При добавлении нового сценария нужно:
1. Импортировать его здесь
2. Добавить в список flows в функции register_all_flows
"""

from config import get_logger
from core.machine import ConversationEngine

from states.menu import MenuFlow
from states.registration import RegistrationFlow
from states.edit import EditFlow
from states.submission import SubmissionFlow
from states.task_creation import TaskCreationFlow
from states.moderation import ModerationFlow

logger = get_logger(__name__)

FLOW_CLASSES = (
    MenuFlow,
    RegistrationFlow,
    EditFlow,
    SubmissionFlow,
    TaskCreationFlow,
    ModerationFlow,
)


def register_all_flows(engine: ConversationEngine) -> None:
    """
    Создаёт все сценарии с зависимостями движка и регистрирует их.

    Args:
        engine: Экземпляр ConversationEngine
    """
    args = (engine.transport, engine.repo, engine.notifier, engine.store, engine.admin_chat_ids)

    flows = [flow_class(*args) for flow_class in FLOW_CLASSES]

    engine.register_all(flows)
    logger.info(f"Registered {len(flows)} flows")
