from command_router.context.interface import IntentDecomposer, PronounResolver
from command_router.context.multi_intent import MultiIntentParser
from command_router.context.thread import ConversationThread

__all__ = ["ConversationThread", "IntentDecomposer", "MultiIntentParser", "PronounResolver"]
