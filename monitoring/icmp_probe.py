# -*- codeing = utf-8 -*-
# @Create: 2023-04-10 0:56 a.m.
# @Update: 2026-10-19 10:05 a.m.
"""Raw-socket ICMP echo helpers."""

import os
import select
import socket
import struct
import time
from contextlib import closing

ICMP_ECHO_REQUEST = 8
ICMP_ECHO_REPLY = 0
PAYLOAD_BODY = b"abcdefghijklmnopqrstuvwabcdefghi"
_HEADER_FORMAT = ">BBHHH32s"


class IcmpProbe:
    """Build, send and match ICMP echo packets over a raw socket."""

    def __init__(self, identifier=None):
        if identifier is None:
            identifier = os.getpid() & 0xFFFF
        self.identifier = identifier

    @staticmethod
    def checksum(data):
        """RFC 1071 internet checksum, returned in network byte order."""

        n = len(data)
        odd = n % 2
        total = 0
        for i in range(0, n - odd, 2):
            total += data[i] + (data[i + 1] << 8)
            total = (total >> 16) + (total & 0xFFFF)
        if odd:
            total += data[-1]
            total = (total >> 16) + (total & 0xFFFF)
        answer = ~total & 0xFFFF
        return answer >> 8 | (answer << 8 & 0xFF00)

    def request_ping(self, sequence, payload_body=PAYLOAD_BODY):
        packet = struct.pack(_HEADER_FORMAT, ICMP_ECHO_REQUEST, 0, 0,
                             self.identifier, sequence, payload_body)
        packet_checksum = self.checksum(packet)
        return struct.pack(_HEADER_FORMAT, ICMP_ECHO_REQUEST, 0,
                           packet_checksum, self.identifier, sequence,
                           payload_body)

    def raw_socket(self, dst_addr, icmp_packet):
        rawsocket = socket.socket(socket.AF_INET, socket.SOCK_RAW,
                                  socket.getprotobyname("icmp"))
        sent_at = time.monotonic()
        try:
            rawsocket.sendto(icmp_packet, (dst_addr, 0))
        except OSError:
            rawsocket.close()
            raise
        return sent_at, closing(rawsocket)

    def reply_ping(self, sent_at, rawsocket, dst_addr, sequence, timeout=3.0):
        """Wait for the echo reply from ``dst_addr``; return the RTT in seconds or -1.

        A raw ICMP socket sees every reply delivered to this host, so a packet
        only matches when its source, identifier and sequence all agree.
        """

        deadline = sent_at + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return -1
            readable, _, _ = select.select([rawsocket], [], [], remaining)
            if not readable:
                return -1
            received_at = time.monotonic()
            received_packet, addr = rawsocket.recvfrom(1024)
            if addr[0] != dst_addr:
                continue
            # Skip the 20-byte IPv4 header.
            icmp_header = received_packet[20:28]
            if len(icmp_header) < 8:
                continue
            packet_type, _, _, packet_id, packet_sequence = struct.unpack(
                ">BBHHH", icmp_header)
            if (packet_type == ICMP_ECHO_REPLY
                    and packet_id == self.identifier
                    and packet_sequence == sequence):
                return received_at - sent_at
