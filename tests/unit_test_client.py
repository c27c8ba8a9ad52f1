"""
Basic unit tests for the relay client and peer helpers.
"""
from unittest.mock import Mock

from client.client import Client
from relay.peer import Peer


def test_peer_format_addr():
    """Test address formatting"""
    writer = Mock()
    peer = Peer(1, writer, ('192.168.1.100', 5000))
    assert peer.format_addr() == "192.168.1.100:5000"
    assert Peer(2, None).format_addr() == "unknown"


def test_peer_send_line_appends_newline():
    writer = Mock()
    peer = Peer(1, writer)
    peer.send_line("hi")
    writer.write.assert_called_once_with(b"hi\n")


def test_peer_close_is_idempotent():
    writer = Mock()
    writer.is_closing.side_effect = [False, True]
    peer = Peer(1, writer)
    peer.close()
    peer.close()
    writer.close.assert_called_once()


def test_client_message_validation():
    """Test message validation"""
    client = Client('localhost', 7711)

    # Valid messages
    assert client.message_validation("hello everyone") == True
    assert client.message_validation("/nick alice") == True
    assert client.message_validation("/list") == True
    assert client.message_validation("/dm bob hi there") == True
    assert client.message_validation("/quit") == True

    # Invalid messages
    assert client.message_validation("") == False
    assert client.message_validation("   ") == False
    assert client.message_validation("/nick ") == False
    assert client.message_validation("/dm bob") == False
    assert client.message_validation("/dm") == False
    assert client.message_validation("/join") == False
    assert client.message_validation("x" * 5000) == False
