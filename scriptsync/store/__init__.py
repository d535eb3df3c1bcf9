"""Store — access to the two metadata replicas and the script contents.

- Local store: a folder of ``<name>.js`` files plus one JSON metadata document
- Remote store: a GitHub repository accessed through the contents API
"""
