from .document import MotionDocument, parse_motion_json, unparse_motion_json

__all__ = ["MotionDocument", "parse_motion_json", "unparse_motion_json"]
