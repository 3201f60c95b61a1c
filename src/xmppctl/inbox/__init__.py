from xmppctl.inbox.message_queue import MessageQueue, QueuedMessage, QueuePreview

__all__ = ["MessageQueue", "QueuedMessage", "QueuePreview"]
