"""테스트 자산 (Fake 프로바이더, 프로바이더 payload)"""
