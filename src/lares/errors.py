"""错误类型定义."""


class LaresError(Exception):
    """所有业务错误的基类."""


# 网络传输错误


class TransportError(LaresError):
    """HTTP 请求失败（连接、DNS、重定向链等）."""


class TooManyRedirections(TransportError):
    """重定向次数超过上限."""

    def __init__(self, url: str, limit: int) -> None:
        super().__init__(f"重定向次数超过上限 {limit}: {url}")
        self.url = url
        self.limit = limit


class MissingLocationHeader(TransportError):
    """重定向响应缺少 Location 头."""

    def __init__(self, url: str) -> None:
        super().__init__(f"重定向响应缺少 Location 头: {url}")
        self.url = url


class UnexpectedStatusCode(TransportError):
    """非预期的 HTTP 状态码."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"非预期的状态码 {status_code}: {url}")
        self.url = url
        self.status_code = status_code


# 解析错误


class ParseError(LaresError):
    """内容解析失败."""


class FeedParseError(ParseError):
    """内容不是可识别的 Feed."""


class OPMLParseError(ParseError):
    """OPML 文档格式错误."""


# 数据一致性错误


class ConsistencyError(LaresError):
    """违反存储约束（唯一性、引用不存在等）."""


class NotFoundError(ConsistencyError):
    """引用的记录不存在."""


class AlreadyExistsError(ConsistencyError):
    """唯一约束冲突."""


class FeedExistsError(AlreadyExistsError):
    """Feed URL 已存在."""


class GroupExistsError(AlreadyExistsError):
    """分组名称已存在."""


class GroupNotEmptyError(ConsistencyError):
    """分组下仍有订阅源."""


# 候选选择错误


class PolicyError(LaresError):
    """候选 Feed 无法确定."""


class NoFeedFound(PolicyError):
    """页面中没有找到任何候选 Feed."""

    def __init__(self, url: str) -> None:
        super().__init__(f"URL 不是 Feed，页面中也没有找到候选 Feed: {url}")
        self.url = url


class AmbiguousFeedError(PolicyError):
    """存在多个候选 Feed 且未做出选择."""

    def __init__(self, url: str, candidates: list[str]) -> None:
        super().__init__(f"URL 不是 Feed，找到 {len(candidates)} 个候选但未选择: {url}")
        self.url = url
        self.candidates = candidates
