# src/portfolio_chat/adapters/projects_ddb.py
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

_FIELDS = ("title", "description", "skills", "demoUrl", "gitUrl")


def _unwrap(attr: Dict[str, Any]) -> Any:
    """Low-level DynamoDB attribute value -> plain Python value (the types the Project model uses)."""
    if "S" in attr:
        return attr["S"]
    if "BOOL" in attr:
        return attr["BOOL"]
    if "L" in attr:
        return [_unwrap(v) for v in attr["L"]]
    if "SS" in attr:
        return list(attr["SS"])
    if "N" in attr:
        return attr["N"]
    return None


class DynamoProjectStore:
    """Read-only view of the portfolio Project table."""

    def __init__(self, table_name: str, region: str | None = None, timeout_sec: float = 5, client=None):
        if not table_name:
            raise ValueError("table_name is required")
        self.table_name = table_name
        self.client = client or boto3.client(
            "dynamodb",
            region_name=region,
            config=Config(connect_timeout=timeout_sec, read_timeout=timeout_sec),
        )

    def _scan(self):
        kwargs = {"TableName": self.table_name}
        while True:
            page = self.client.scan(**kwargs)
            for item in page.get("Items", []):
                yield {k: _unwrap(v) for k, v in item.items()}
            last = page.get("LastEvaluatedKey")
            if not last:
                break
            kwargs["ExclusiveStartKey"] = last

    def list_projects(self, skill: Optional[str] = None) -> List[Dict[str, Any]]:
        want = (skill or "").strip().lower()
        out = []
        for item in self._scan():
            # isActive defaults to true in the data model
            if item.get("isActive") is False:
                continue
            skills = item.get("skills") or []
            if want and want not in {str(s).lower() for s in skills}:
                continue
            out.append({k: item.get(k) for k in _FIELDS if item.get(k) is not None})
        logger.info("[projects] %d projects (skill=%s)", len(out), skill)
        return out
