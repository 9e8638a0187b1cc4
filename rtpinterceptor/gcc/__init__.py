"""Google Congestion Control: loss- and delay-based send-side bandwidth estimation and pacing."""