"""SDP session descriptions, offers, answers and codec selection."""