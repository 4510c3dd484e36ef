"""AWS RDS log files as a log source."""

from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from loglift.errors import TransientSourceError
from loglift.models import ChunkResponse, LogFileCandidate
from loglift.utils.logging import debug_event, get_logger

logger = get_logger("loglift.sources.rds")


class RdsLogSource:
    def __init__(
        self,
        instance_name: str,
        *,
        client: Any | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        max_attempts: int = 3,
    ) -> None:
        self.instance_name = instance_name
        if client is None:
            client = boto3.client(
                "rds",
                region_name=region,
                endpoint_url=endpoint_url,
                config=Config(retries={"max_attempts": max_attempts, "mode": "standard"}),
            )
        self.client = client

    @classmethod
    def from_options(cls, instance_name: str, options: dict[str, Any]) -> RdsLogSource:
        return cls(
            instance_name,
            region=options.get("region"),
            endpoint_url=options.get("endpoint_url"),
            max_attempts=int(options.get("max_attempts", 3)),
        )

    def list_log_files(self, filename_contains: str, since_ms: int) -> list[LogFileCandidate]:
        candidates: list[LogFileCandidate] = []
        try:
            paginator = self.client.get_paginator("describe_db_log_files")
            for page in paginator.paginate(
                DBInstanceIdentifier=self.instance_name,
                FilenameContains=filename_contains,
                FileLastWritten=since_ms,
            ):
                for item in page.get("DescribeDBLogFiles", []):
                    candidates.append(
                        LogFileCandidate(
                            name=str(item["LogFileName"]),
                            last_written=int(item.get("LastWritten", 0)),
                            size=int(item.get("Size", 0)),
                        )
                    )
        except (ClientError, BotoCoreError) as exc:
            raise TransientSourceError(
                f"describe_db_log_files failed for {self.instance_name}: {exc}"
            ) from exc

        debug_event(
            logger,
            "rds_log_files_listed",
            instance=self.instance_name,
            filter=filename_contains,
            since_ms=since_ms,
            count=len(candidates),
        )
        return candidates

    def download(self, file_name: str, marker: str, number_of_lines: int) -> ChunkResponse:
        try:
            response = self.client.download_db_log_file_portion(
                DBInstanceIdentifier=self.instance_name,
                LogFileName=file_name,
                Marker=marker,
                NumberOfLines=number_of_lines,
            )
        except (ClientError, BotoCoreError) as exc:
            raise TransientSourceError(
                f"download_db_log_file_portion failed for {self.instance_name}/{file_name}: {exc}",
                file_name=file_name,
            ) from exc

        data = response.get("LogFileData") or ""
        return ChunkResponse(
            lines=data.splitlines(keepends=True),
            marker=str(response.get("Marker", marker)),
            additional_data_pending=bool(response.get("AdditionalDataPending", False)),
        )
