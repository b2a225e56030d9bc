"""Client 异常体系"""


class ClientError(Exception):
    """Client 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 用户重试是否可能成功
        """
        super().__init__(message)
        self.recoverable = recoverable


class GatewayUnreachableError(ClientError):
    """gateway 不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, gateway_url: str, original_error: Exception) -> None:
        """
        Args:
            gateway_url: 尝试连接的 gateway 地址
            original_error: 原始异常
        """
        super().__init__(
            f"Gateway unreachable: {gateway_url} -- {original_error}",
            recoverable=True,
        )
        self.gateway_url = gateway_url
        self.original_error = original_error


class GatewayResponseError(ClientError):
    """gateway 返回错误响应（4xx/5xx）

    code 来自错误信封 {"error": {"code", "message"}}，无法解析时为 HTTP_<status>。
    """

    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(
            f"Gateway error {status_code} {code}: {message}",
            recoverable=status_code >= 500,
        )
        self.status_code = status_code
        self.code = code
        self.message = message
