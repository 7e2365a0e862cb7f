"""
Tag collection — mandatory connector and infrastructure tags first.

Every managed resource carries exactly one connector-identity tag and one
infrastructure-identity tag. Caller tags reusing either key are dropped.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .config import ConnectorSettings
from .models import Options, Tag

logger = logging.getLogger(__name__)


class TagManager:
    """Builds the tag set attached to provisioned resources.

    Args:
        settings: Connector settings holding the mandatory tag keys.
    """

    def __init__(self, settings: Optional[ConnectorSettings] = None) -> None:
        settings = settings or ConnectorSettings()
        self.connector_tag = Tag(
            key=settings.connector_tag_key,
            value=settings.connector_tag_value,
        )
        self.infrastructure_tag_key = settings.infrastructure_tag_key

    def collect_tags(
        self, infrastructure_id: str, options: Optional[Options] = None,
    ) -> List[Tag]:
        """Return mandatory tags followed by non-colliding caller tags.

        Args:
            infrastructure_id: Value of the infrastructure-identity tag.
            options: Request options that may carry caller tags.

        Returns:
            Ordered list of tags, the two mandatory ones first.
        """
        mandatory_keys = {self.connector_tag.key, self.infrastructure_tag_key}
        tags = [
            self.connector_tag.model_copy(),
            Tag(key=self.infrastructure_tag_key, value=infrastructure_id),
        ]
        for tag in (options.tags if options else []):
            if tag.key in mandatory_keys:
                logger.debug("Dropping caller tag %s colliding with a mandatory key", tag.key)
                continue
            tags.append(tag)
        return tags

    @staticmethod
    def as_dict(tags: List[Tag]) -> Dict[str, str]:
        """Provider tag mapping; a missing value becomes an empty string."""
        return {tag.key: tag.value or "" for tag in tags}

    def is_created_by_connector(self, tags: Dict[str, str]) -> bool:
        """True when ``tags`` carry this connector's identity tag."""
        return tags.get(self.connector_tag.key) == self.connector_tag.value
