"""Audio frames, writers, pipes, codecs, G.711, DTMF, tones and resampling."""