from nwsproxy.main import run

run()
