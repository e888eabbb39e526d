from .overlay import detection_label, detection_rect, draw_detections, encode_jpeg

__all__ = ["detection_label", "detection_rect", "draw_detections", "encode_jpeg"]
