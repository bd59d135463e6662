"""Routing of TLS connections by the SNI server name they announce."""

from .access import get_target_list
from .outbound import join_host_port
from .tlssniff import NotTLSError, sniff_and_record


def _send(conn, data):
    sendall = getattr(conn, "sendall", None)
    if sendall is not None:
        sendall(data)
    else:
        conn.write(data)


def _dial_and_write(out, host, port, record):
    remote = out.dial("tcp", join_host_port(host, port))
    try:
        _send(remote, record)
    except BaseException:
        remote.close()
        raise
    return remote


def handle_tls_connection(service, conn, out, lists):
    """Sniff the client's first TLS record and open the matching remote connection.

    Allowed server names are dialled directly on the service's target port;
    everything else goes to the configured target, unless the service rejects
    it. The bytes already read from the client are forwarded to the remote.
    """
    sniffing = service.tls_sniffing
    try:
        domain, record = sniff_and_record(conn)
    except NotTLSError as err:
        if err.record is None or sniffing.reject_non_tls:
            raise
        return _dial_and_write(out, service.target_address, service.target_port, err.record)

    hit = any(domain in get_target_list(lists, tag) for tag in sniffing.sni_allow_list_tags or ())
    if not hit:
        if sniffing.reject_if_non_match:
            raise PermissionError(f"server name {domain} is not allowed")
        return _dial_and_write(out, service.target_address, service.target_port, record)
    return _dial_and_write(out, domain, service.target_port, record)