from supaprobe.cli import run

run()
