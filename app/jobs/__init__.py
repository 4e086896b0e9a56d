"""배치 작업 패키지 — 일일 시프트 생성 및 시작 처리 (Scheduled jobs)."""
