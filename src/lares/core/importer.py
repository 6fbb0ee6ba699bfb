"""OPML 批量导入."""

import io
import logging
from dataclasses import dataclass, field

from lxml import etree
from pydantic import AnyUrl, TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from lares.core.resolver import Resolver
from lares.core.store import Store
from lares.errors import LaresError, OPMLParseError
from lares.models.feed import Feed
from lares.models.group import Group
from lares.utils.concurrency import fan_out

logger = logging.getLogger(__name__)

_url_adapter: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)


@dataclass
class ImportedFeed:
    """OPML 中的一个订阅源条目."""

    feed_url: str
    title: str | None = None
    site_url: str | None = None

    def __str__(self) -> str:
        details = []
        if self.title:
            details.append(f'"{self.title}"')
        if self.site_url:
            details.append(self.site_url)
        return f"{self.feed_url}({', '.join(details)})" if details else self.feed_url

    @property
    def needs_metadata(self) -> bool:
        return not self.title or not self.site_url

    async def update(self, resolver: Resolver) -> None:
        """标题或网站 URL 缺失时，从 Feed 本身补全."""
        if not self.needs_metadata:
            return

        logger.info(f"补全订阅源信息: {self}")
        remote = await resolver.fetch_feed(self.feed_url)
        if not self.title:
            self.title = remote.title
        if not self.site_url:
            self.site_url = remote.site_url

    def validate(self) -> None:
        """
        校验 URL 格式.

        Raises:
            ValueError: feed_url 或 site_url 不是合法 URL
        """
        try:
            _url_adapter.validate_python(self.feed_url)
            if self.site_url:
                _url_adapter.validate_python(self.site_url)
        except ValidationError as e:
            msg = f"URL 格式错误: {self}"
            raise ValueError(msg) from e

    def to_feed(self) -> Feed:
        return Feed(
            title=self.title or self.feed_url,
            url=self.feed_url,
            site_url=self.site_url or self.feed_url,
        )


Grouping = tuple[str | None, list[ImportedFeed]]


def parse_opml(content: bytes) -> list[Grouping]:
    """
    解析 OPML 文档为 (分组名, [订阅源]) 列表.

    没有 xmlUrl 但有 title/text 的 outline 开启一个分组；
    带 xmlUrl 的 outline 是订阅源，归入当前分组，没有分组时归入未分组。
    分组未关闭时又遇到新的分组标签，记录警告并忽略这个标签。

    Raises:
        OPMLParseError: 文档不是合法的 XML
    """
    result: list[Grouping] = []
    ungrouped: list[ImportedFeed] = []

    scope: etree._Element | None = None
    scope_name: str | None = None
    scope_feeds: list[ImportedFeed] = []

    parser = etree.iterparse(
        io.BytesIO(content),
        events=("start", "end"),
        tag="outline",
        resolve_entities=False,
        no_network=True,
    )

    try:
        for event, element in parser:
            attrs = element.attrib

            if event == "end":
                if element is scope:
                    if scope_feeds:
                        logger.info(f"分组处理完成: {scope_name} ({len(scope_feeds)} 个订阅源)")
                        result.append((scope_name, scope_feeds))
                    scope, scope_name, scope_feeds = None, None, []
                continue

            feed_url = attrs.get("xmlUrl")
            title = attrs.get("title") or attrs.get("text")

            if feed_url is None:
                if scope is not None:
                    logger.warning("OPML 格式可能有误: 上一个分组标签尚未关闭")
                    continue
                if not title:
                    logger.warning("outline 既没有订阅源 URL 也没有标题，跳过")
                    continue
                logger.info(f"开始处理分组: {title}")
                scope, scope_name, scope_feeds = element, title, []
                continue

            entry = ImportedFeed(feed_url, title, attrs.get("htmlUrl"))
            logger.debug(f"读取订阅源 {entry}")
            (scope_feeds if scope is not None else ungrouped).append(entry)
    except etree.XMLSyntaxError as e:
        msg = f"OPML 文档格式错误: {e}"
        raise OPMLParseError(msg) from e

    # 文档结束时仍未关闭的分组
    if scope is not None and scope_feeds:
        result.append((scope_name, scope_feeds))

    if ungrouped:
        logger.info(f"未分组订阅源: {len(ungrouped)} 个")
        result.append((None, ungrouped))

    return result


@dataclass
class ImportReport:
    """导入结果统计."""

    groups: list[str] = field(default_factory=list)
    feeds_added: int = 0
    feeds_invalid: int = 0
    feeds_failed: int = 0
    metadata_failed: int = 0


class OPMLImporter:
    """OPML 导入器."""

    def __init__(
        self,
        store: Store,
        resolver: Resolver,
        concurrency: int | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.concurrency = concurrency

    async def import_document(self, content: bytes) -> ImportReport:
        """解析、补全、校验并写入 OPML 中的所有订阅源."""
        groupings = parse_opml(content)
        report = ImportReport()

        # 并发补全缺失的标题和网站 URL
        pending = [entry for _, entries in groupings for entry in entries if entry.needs_metadata]
        if pending:
            results = await fan_out(
                self._update_entry,
                pending,
                concurrency=self.concurrency,
                label="补全订阅源信息",
            )
            report.metadata_failed = sum(1 for r in results if not r.ok)

        for group_name, entries in groupings:
            valid = self._validate(entries, report)
            if not valid:
                continue

            group = await self._resolve_group(group_name) if group_name else None
            if group is not None:
                report.groups.append(group.title)

            for entry in valid:
                if await self._commit(entry, group):
                    report.feeds_added += 1
                else:
                    report.feeds_failed += 1

        logger.info(
            f"导入完成: 新增={report.feeds_added}, 无效={report.feeds_invalid}, "
            f"失败={report.feeds_failed}"
        )
        return report

    async def _update_entry(self, entry: ImportedFeed) -> None:
        await entry.update(self.resolver)

    @staticmethod
    def _validate(entries: list[ImportedFeed], report: ImportReport) -> list[ImportedFeed]:
        valid: list[ImportedFeed] = []
        for entry in entries:
            try:
                entry.validate()
            except ValueError as e:
                logger.warning(f"无效的订阅源: {e}")
                report.feeds_invalid += 1
                continue
            valid.append(entry)
        return valid

    async def _resolve_group(self, name: str) -> Group | None:
        try:
            return await self.store.get_or_create_group(name)
        except (LaresError, SQLAlchemyError) as e:
            logger.warning(f"无法创建分组 {name}: {e}")
            return None

    async def _commit(self, entry: ImportedFeed, group: Group | None) -> bool:
        try:
            feed = await self.store.insert_feed(entry.to_feed())
        except (LaresError, SQLAlchemyError) as e:
            logger.warning(f"无法创建订阅源 {entry}: {e}")
            return False

        if group is None or group.id is None or feed.id is None:
            return True

        try:
            await self.store.add_feed_to_group(group.id, feed.id)
        except (LaresError, SQLAlchemyError) as e:
            logger.warning(f"无法将订阅源 {entry} 加入分组 {group.title}: {e}")
            return False
        return True
