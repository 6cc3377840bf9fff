# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Action node: side effects selected by ``actionType``.

- ``http``: arbitrary HTTP request (body defaults to the node's inputs)
- ``slack``: post a message through Slack's chat.postMessage
- ``notion``: create a page in a Notion database
- ``log`` / ``custom`` / ``dashboard``: record a summary of the inputs in the run log
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flowgate.core.config import get_notion_api_key, get_slack_bot_token
from flowgate.core.errors import ServiceUnavailableError, ValidationError
from flowgate.workflow.interpolation import interpolate_config

from .base import BaseHandler, config_value, require_secret


SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"
NOTION_PAGES_URL = "https://api.notion.com/v1/pages"
NOTION_VERSION = "2022-06-28"

SUMMARY_ACTIONS = ("log", "custom", "dashboard")


class ActionHandler(BaseHandler):
    """Handler for ``action`` nodes"""

    service = "action"

    async def __call__(
        self,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        action_type = config_value(config, "action_type", "actionType")

        if action_type == "http":
            return await self._http(config, inputs, trigger_data)
        if action_type == "slack":
            return await self._slack(config, inputs, trigger_data)
        if action_type == "notion":
            return await self._notion(config, inputs, trigger_data)
        if action_type in SUMMARY_ACTIONS:
            return self._log(action_type, config, inputs, trigger_data)

        raise ValidationError(f"Unknown action type: {action_type}", field="actionType")

    async def _http(self, config: Dict[str, Any], inputs: Dict[str, Any], trigger_data: Dict[str, Any]) -> Dict[str, Any]:
        url = self.render(config.get("url"), trigger_data, inputs)
        if not url:
            raise ValidationError("URL is required for HTTP actions", field="url")

        method = str(config.get("method") or "POST").upper()
        headers = config.get("headers") or {"Content-Type": "application/json"}
        body = config.get("body")
        body = interpolate_config(body, trigger_data, inputs) if body is not None else inputs

        request_kwargs: Dict[str, Any] = {"headers": headers}
        if method not in ("GET", "HEAD", "DELETE"):
            if isinstance(body, (dict, list)):
                request_kwargs["json"] = body
            else:
                request_kwargs["content"] = str(body)

        self.logger.info(f"HTTP action: {method} {url}")
        response = await self.request(method, url, **request_kwargs)

        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text

        return {"status_code": response.status_code, "url": url, "body": payload}

    async def _slack(self, config: Dict[str, Any], inputs: Dict[str, Any], trigger_data: Dict[str, Any]) -> Dict[str, Any]:
        token = require_secret(get_slack_bot_token(), "SLACK_BOT_TOKEN", "Slack actions")
        channel = self.render(config.get("channel") or "#general", trigger_data, inputs)
        text = self.render(config.get("message"), trigger_data, inputs)
        if not text:
            text = f"Workflow executed with inputs from: {', '.join(inputs) or 'none'}"

        data = await self.request_json(
            "POST",
            SLACK_POST_MESSAGE_URL,
            headers={"Authorization": f"Bearer {token}"},
            json={"channel": channel, "text": text},
        )
        if not data.get("ok"):
            raise ServiceUnavailableError(
                f"Slack rejected the message: {data.get('error', 'unknown error')}", service="slack"
            )

        self.logger.info(f"Posted Slack message to {channel}")
        return {"channel": data.get("channel", channel), "ts": data.get("ts"), "message": text}

    async def _notion(self, config: Dict[str, Any], inputs: Dict[str, Any], trigger_data: Dict[str, Any]) -> Dict[str, Any]:
        token = require_secret(get_notion_api_key(), "NOTION_API_KEY", "Notion actions")
        database_id = config_value(config, "database_id", "databaseId")
        if not database_id:
            raise ValidationError("databaseId is required for Notion actions", field="databaseId")

        title = self.render(config.get("title"), trigger_data, inputs)
        if not title:
            title = f"Workflow Execution - {datetime.now(timezone.utc).isoformat()}"

        properties = {"Name": {"title": [{"text": {"content": title}}]}}
        properties.update(interpolate_config(config.get("properties") or {}, trigger_data, inputs))

        data = await self.request_json(
            "POST",
            NOTION_PAGES_URL,
            headers={"Authorization": f"Bearer {token}", "Notion-Version": NOTION_VERSION},
            json={"parent": {"database_id": database_id}, "properties": properties},
        )

        self.logger.info(f"Created Notion page in database {database_id}")
        return {"page_id": data.get("id"), "url": data.get("url"), "title": title}

    def _log(
        self,
        action_type: str,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
    ) -> Dict[str, Any]:
        message = self.render(config.get("message"), trigger_data, inputs)
        received = sorted(node_id for node_id, data in inputs.items() if data is not None)
        missing = sorted(node_id for node_id, data in inputs.items() if data is None)

        self.logger.info(f"{action_type} action: {message or 'no message'} (inputs: {received})")
        return {
            "action": action_type,
            "message": message,
            "inputs_received": received,
            "inputs_missing": missing,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
