"""HTTP dispatch of document submissions."""

from crptclient.transport.dispatcher import Dispatcher, serialize_payload

__all__ = ["Dispatcher", "serialize_payload"]
