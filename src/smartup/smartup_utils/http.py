# -*- coding: utf-8 -*-
from typing import Any
from typing import Optional

import requests

from smartup import __version__


def get_requests_session() -> requests.Session:
    """
    获取一个配置好的 requests.Session 对象

    返回:
        requests.Session 对象
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": f"smartup/{__version__}",
            "Accept": "application/json",
        }
    )
    return session


def get(url: str, session: Optional[requests.Session] = None, **kwargs: Any) -> requests.Response:
    """
    发送 GET 请求，使用 requests 实现

    参数:
        url: 请求的 URL
        session: (可选) 复用的会话；未提供时临时创建
        **kwargs: 其他传递给 requests.get 的参数

    返回:
        requests.Response 对象

    异常:
        requests.HTTPError: 响应状态码表示错误时
    """
    if session is not None:
        response = session.get(url=url, **kwargs)
        response.raise_for_status()
        return response
    with get_requests_session() as temp_session:
        response = temp_session.get(url=url, **kwargs)
        response.raise_for_status()
        return response
