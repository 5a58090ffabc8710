"""Remote todo service contract and implementations."""

from todohub.sync.remote.base import RemoteTodoService
from todohub.sync.remote.memory import InMemoryTodoService, RemoteCall

__all__ = ["RemoteTodoService", "InMemoryTodoService", "RemoteCall"]
