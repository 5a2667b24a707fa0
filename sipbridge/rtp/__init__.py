"""RTP packets, streams, multiplexing, audio codecs and UDP connections."""