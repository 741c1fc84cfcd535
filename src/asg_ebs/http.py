import requests
from requests.exceptions import HTTPError


def raise_http_error(r: requests.Response) -> None:
    if r.ok:
        return

    url = r.request.url
    body = r.text.strip()

    msg = [f"{r.status_code} {r.reason} for url: {url}"]
    if body:
        msg.append(body)
    raise HTTPError("; ".join(msg), response=r)
