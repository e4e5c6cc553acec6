# -*- coding: utf-8 -*-
"""scene 包：交互层（拖拽会话），驱动 posing 中的 IK 求解。"""
