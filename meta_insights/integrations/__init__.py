from .graph_client import AccountAuth, GraphTransport, decode_response

__all__ = ["AccountAuth", "GraphTransport", "decode_response"]
