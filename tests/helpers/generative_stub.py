from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Mapping
from typing import Any

from thnk.clients.generative import GenerativeRequest
from thnk.services.research.errors import GenerativeCallError

Reply = str | dict[str, Any] | list[Any] | Exception


class StubGenerativeClient:
    """Returns canned replies keyed by ``schema_name``.

    A tuple of replies for one key is consumed in order; the last reply repeats.
    Dict and list replies are serialized to JSON. Exception replies are raised.
    """

    def __init__(self, replies: Mapping[str | None, Reply | tuple[Reply, ...]] | None = None) -> None:
        self._replies: dict[str | None, list[Reply]] = {}
        for key, value in (replies or {}).items():
            self._replies[key] = list(value) if isinstance(value, tuple) else [value]
        self.requests: list[GenerativeRequest] = []
        self._served: dict[str | None, int] = defaultdict(int)

    def queue(self, schema_name: str | None, *replies: Reply) -> None:
        self._replies[schema_name] = list(replies)

    def calls_for(self, schema_name: str | None) -> list[GenerativeRequest]:
        return [request for request in self.requests if request.schema_name == schema_name]

    async def generate(self, request: GenerativeRequest) -> str:
        self.requests.append(request)
        options = self._replies.get(request.schema_name)
        if not options:
            raise GenerativeCallError(f"No stub reply for {request.schema_name!r}")
        index = min(self._served[request.schema_name], len(options) - 1)
        self._served[request.schema_name] += 1
        reply = options[index]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, (dict, list)):
            return json.dumps(reply)
        return reply
