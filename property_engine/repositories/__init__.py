"""Repositories - 해석 로그 저장소"""
