# graph/classify.py
# Определение вида узла (иконки) по имени сервиса

from enum import Enum


class NodeKind(str, Enum):
    DATABASE = "database"
    MOBILE = "mobile"
    WEB = "web"
    SERVER = "server"


# Правила проверяются по порядку, побеждает ПОСЛЕДНЕЕ совпавшее:
# web важнее mobile, mobile важнее database.
KIND_RULES: tuple[tuple[NodeKind, tuple[str, ...]], ...] = (
    (NodeKind.DATABASE, ("db", "redis")),
    (NodeKind.MOBILE, ("mobile", "ios")),
    (NodeKind.WEB, ("frontend", "web")),
)


def classify_node(service_name: str) -> NodeKind:
    """Возвращает NodeKind для имени сервиса (без учёта регистра).

    Нет совпадений → SERVER.
    """
    name = service_name.lower()
    kind = NodeKind.SERVER
    for rule_kind, needles in KIND_RULES:
        if any(n in name for n in needles):
            kind = rule_kind
    return kind


if __name__ == "__main__":
    for name in ("payments-db", "session-redis", "ios-bff", "web-frontend", "mobile-web", "order-svc"):
        print(f"{name:16s} → {classify_node(name).value}")
