# MIT License
#
# Copyright (c) 2018 Evgeny Medvedev, evge.medvedev@gmail.com
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
# Modified By: Cuong CT, 6/12/2025
# Change Description: Refactored for performance, readability, and type safety.
# JSON-RPC errors are raised as RpcError / RetriableRpcError.

from typing import Any, Dict, Union

from voting.exceptions import RetriableRpcError, RpcError

JSON_RPC_INTERNAL_ERROR = -32603
JSON_RPC_SERVER_ERROR_MIN = -32099
JSON_RPC_SERVER_ERROR_MAX = -32000
JSON_RPC_EXECUTION_ERROR = 3
EXECUTION_REVERTED_MESSAGE = "execution reverted"


def rpc_response_to_result(response: Dict[str, Any]) -> Any:
    result = response.get("result")
    if result is not None:
        return result

    error = response.get("error")
    error_message = f"result is None in response {response}."

    if error is None:
        error_message += " Make sure Ethereum node is synced."
        # When nodes are behind a load balancer it makes sense to retry the request
        # in hopes it will go to other, synced node
        raise RetriableRpcError(error_message)

    if is_retriable_error(error.get("code")) and not is_execution_reverted(error):
        raise RetriableRpcError(error_message)

    raise RpcError(error_message)


def is_execution_reverted(error: Dict[str, Any]) -> bool:
    # Reverts are deterministic, another node gives the same answer
    return error.get("code") == JSON_RPC_EXECUTION_ERROR or EXECUTION_REVERTED_MESSAGE in str(error.get("message", "")).lower()


def is_retriable_error(error_code: Union[int, str, None]) -> bool:
    if error_code is None or not isinstance(error_code, int):
        return False

    # https://www.jsonrpc.org/specification#error_object
    if error_code == JSON_RPC_INTERNAL_ERROR or (JSON_RPC_SERVER_ERROR_MAX >= error_code >= JSON_RPC_SERVER_ERROR_MIN):
        return True

    return False
