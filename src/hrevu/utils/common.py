import socket


def get_random_port(host: str = "127.0.0.1", port: int = 0) -> tuple[socket.socket, int]:
    """Bind a listening socket and return it with the port it got.

    Port 0 lets the OS pick a free port. The socket stays open so the port
    cannot be taken before the server starts on it.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
        sock.listen(128)
    except OSError:
        sock.close()
        raise
    return sock, sock.getsockname()[1]
