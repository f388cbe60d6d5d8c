"""
Toast notifications emitted by client components.
"""
import enum
from dataclasses import dataclass
from typing import Callable, List, Optional


class ToastKind(str, enum.Enum):
    success = "success"
    error = "error"
    info = "info"


@dataclass(frozen=True)
class Toast:
    kind: ToastKind
    title: str
    message: str = ""


class ToastQueue:
    """Collects toasts in order; an optional sink is called for each one."""

    def __init__(self, sink: Optional[Callable[[Toast], None]] = None):
        self._toasts: List[Toast] = []
        self._sink = sink

    def push(self, toast: Toast) -> Toast:
        self._toasts.append(toast)
        if self._sink is not None:
            self._sink(toast)
        return toast

    def success(self, title: str, message: str = "") -> Toast:
        return self.push(Toast(ToastKind.success, title, message))

    def error(self, title: str, message: str = "") -> Toast:
        return self.push(Toast(ToastKind.error, title, message))

    def info(self, title: str, message: str = "") -> Toast:
        return self.push(Toast(ToastKind.info, title, message))

    @property
    def toasts(self) -> List[Toast]:
        return list(self._toasts)

    def drain(self) -> List[Toast]:
        toasts, self._toasts = self._toasts, []
        return toasts
