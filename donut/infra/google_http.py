import httplib2

from donut.infra.settings import API_TIMEOUT


class BearerHttp(httplib2.Http):
    """httplib2 client that sends a fixed access token and never refreshes it.

    Token refresh belongs to the session; a 401 has to reach the caller as-is.
    """

    def __init__(self, access_token: str, timeout: float = API_TIMEOUT):
        super().__init__(timeout=timeout)
        self.access_token = access_token

    def request(self, uri, method="GET", body=None, headers=None, *args, **kwargs):
        headers = dict(headers or {})
        headers["authorization"] = f"Bearer {self.access_token}"
        return super().request(uri, method, body, headers, *args, **kwargs)
