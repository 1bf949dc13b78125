def render(data):
    return f"<footer>{data['global']['site']} {data['global']['year']}</footer>"
