from cipherstash.app import deploy

deploy()
